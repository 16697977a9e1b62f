"""
Models for a whole project: its services and networks.
"""
from typing import List, Dict, Optional
from pydantic import BaseModel, field_validator
from .service_definition import ServiceConfig


class NetworkDefinition(BaseModel):
    """
    A network declared by the project. `name` is the name known to the runtime.
    """
    name: str
    external: bool = False


class Project(BaseModel):
    """
    Complete desired state of a multi-service application.
    Equivalent to a parsed compose file.
    """
    name: str
    services: List[ServiceConfig] = []
    networks: Dict[str, NetworkDefinition] = {}

    @field_validator("services")
    @classmethod
    def _unique_service_names(cls, services: List[ServiceConfig]) -> List[ServiceConfig]:
        seen = set()
        for service in services:
            if service.name in seen:
                raise ValueError(f"duplicate service name {service.name!r}")
            seen.add(service.name)
        return services

    def service_names(self) -> List[str]:
        return [s.name for s in self.services]

    def get_service(self, name: str) -> Optional[ServiceConfig]:
        for service in self.services:
            if service.name == name:
                return service
        return None

    def get_dependents(self, name: str) -> List[ServiceConfig]:
        """
        Services that directly depend on `name`.
        """
        return [s for s in self.services if name in s.depends_on]

    def network_name(self, key: str) -> str:
        """
        Runtime name of the network declared under `key`.
        """
        network = self.networks.get(key)
        if network is not None:
            return network.name
        return f"{self.name}_{key}"

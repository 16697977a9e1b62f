"""
The container runtime seen from the convergence engine.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from ..MODELS.container import Container, ContainerCreateSpec, ContainerDetails


class RuntimeClient(ABC):
    """
    Operations the engine needs from a container runtime. Implementations
    raise their own errors, the engine propagates them unchanged.
    """

    @abstractmethod
    def list_containers(self,
                        project_name: str,
                        services: Optional[List[str]] = None,
                        one_off: Optional[bool] = False,
                        include_stopped: bool = True) -> List[Container]:
        """
        Lists the containers labelled with the project.

        :param project_name: Project label to match.
        :param services: Restrict to these service labels, all services when None.
        :param one_off: Match the one-off marker, both kinds when None.
        :param include_stopped: Include containers that are not running.
        """

    @abstractmethod
    def inspect_container(self, container_id: str) -> ContainerDetails:
        ...

    @abstractmethod
    def create_container(self, spec: ContainerCreateSpec) -> str:
        """
        Creates (but does not start) a container and returns its ID.
        """

    @abstractmethod
    def start_container(self, container_id: str) -> None:
        ...

    @abstractmethod
    def stop_container(self, container_id: str, timeout: Optional[float] = None) -> None:
        ...

    @abstractmethod
    def remove_container(self, container_id: str) -> None:
        ...

    @abstractmethod
    def rename_container(self, container_id: str, new_name: str) -> None:
        ...

    @abstractmethod
    def connect_network(self,
                        network: str,
                        container_id: str,
                        aliases: Optional[List[str]] = None,
                        ipv4_address: Optional[str] = None,
                        ipv6_address: Optional[str] = None,
                        links: Optional[List[str]] = None) -> None:
        ...

    @abstractmethod
    def disconnect_network(self, network: str, container_id: str, force: bool = False) -> None:
        ...

"""
Models for defining services, including scale, dependencies, networks and health checks.
"""
from typing import List, Dict, Optional, Any
from pydantic import BaseModel, Field
from enum import Enum

DEFAULT_NETWORK = "default"


class RestartPolicyCondition(str, Enum):
    """
    Conditions under which the runtime should restart a container.
    """
    NO = "no"
    ALWAYS = "always"
    ON_FAILURE = "on-failure"
    UNLESS_STOPPED = "unless-stopped"


class ServiceCondition(str, Enum):
    """
    Conditions a dependent service can wait for on one of its dependencies.
    """
    STARTED = "service_started"
    HEALTHY = "service_healthy"
    COMPLETED_SUCCESSFULLY = "service_completed_successfully"


class HealthCheck(BaseModel):
    """
    Defines a command the runtime runs to check the health of a container.
    """
    test: List[str]
    interval: float = 30.0
    timeout: float = 30.0
    retries: int = 3
    start_period: float = 0.0


class ServiceDependency(BaseModel):
    """
    One depends_on entry. The condition is kept as a plain string so that
    conditions unknown to this version survive parsing.
    """
    condition: str = ServiceCondition.STARTED.value


class ServiceNetworkConfig(BaseModel):
    """
    Per-network attachment settings of a service.
    """
    aliases: List[str] = []
    ipv4_address: Optional[str] = None
    ipv6_address: Optional[str] = None
    priority: int = 0


class DeployConfig(BaseModel):
    replicas: Optional[int] = None


class ServiceConfig(BaseModel):
    """
    The desired configuration of a single service.
    """
    name: str
    image: str = ""

    # Execution
    command: List[str] = []
    entrypoint: List[str] = []
    environment: Dict[str, str] = {}
    labels: Dict[str, str] = {}
    platform: Optional[str] = None

    # Scale
    scale: int = 0  # 0 means unset
    deploy: Optional[DeployConfig] = None
    container_name: Optional[str] = None

    # Networking
    networks: Dict[str, Optional[ServiceNetworkConfig]] = {}
    links: List[str] = []
    external_links: List[str] = []

    # Lifecycle
    depends_on: Dict[str, ServiceDependency] = {}
    health_check: Optional[HealthCheck] = None
    restart_policy: RestartPolicyCondition = RestartPolicyCondition.NO

    # Metadata
    extensions: Dict[str, Any] = Field(default_factory=dict)

    def get_dependencies(self) -> List[str]:
        """
        Names of the services this service depends on.
        """
        return list(self.depends_on.keys())

    def networks_by_priority(self) -> List[str]:
        """
        Network keys ordered by descending priority, then by name.
        A service without explicit networks joins the default network.
        """
        if not self.networks:
            return [DEFAULT_NETWORK]

        def priority(key: str) -> int:
            cfg = self.networks[key]
            return cfg.priority if cfg else 0

        return sorted(self.networks, key=lambda key: (-priority(key), key))

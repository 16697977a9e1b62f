"""
Models for containers as observed on, and requested from, the runtime.
"""
from typing import Any, List, Dict, Optional
from pydantic import BaseModel
from enum import Enum

from .errors import InvalidLabelError

PROJECT_LABEL = "com.docker.compose.project"
SERVICE_LABEL = "com.docker.compose.service"
CONFIG_HASH_LABEL = "com.docker.compose.config-hash"
CONTAINER_NUMBER_LABEL = "com.docker.compose.container-number"
ONE_OFF_LABEL = "com.docker.compose.oneoff"
VERSION_LABEL = "com.docker.compose.version"


class ContainerState(str, Enum):
    """
    Lifecycle state of a container. Anything the runtime reports that is not
    listed here is mapped to OTHER.
    """
    RUNNING = "running"
    CREATED = "created"
    RESTARTING = "restarting"
    EXITED = "exited"
    REMOVING = "removing"
    PAUSED = "paused"
    DEAD = "dead"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ContainerState":
        try:
            return cls((raw or "").lower())
        except ValueError:
            return cls.OTHER


class HealthStatus(str, Enum):
    """Health status reported by a container's healthcheck."""

    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    NONE = "none"


class NetworkEndpoint(BaseModel):
    """
    Attachment of a container to one network.
    """
    aliases: List[str] = []
    ip_address: Optional[str] = None
    ipv6_address: Optional[str] = None


class Container(BaseModel):
    """
    Summary of a container as returned by a runtime listing.
    """
    id: str
    names: List[str] = []
    labels: Dict[str, str] = {}
    state: ContainerState = ContainerState.OTHER
    networks: Dict[str, NetworkEndpoint] = {}

    @property
    def short_id(self) -> str:
        return self.id[:12]

    @property
    def project(self) -> Optional[str]:
        return self.labels.get(PROJECT_LABEL)

    @property
    def service(self) -> Optional[str]:
        return self.labels.get(SERVICE_LABEL)

    @property
    def config_hash(self) -> Optional[str]:
        return self.labels.get(CONFIG_HASH_LABEL)

    @property
    def is_one_off(self) -> bool:
        return self.labels.get(ONE_OFF_LABEL, "False").lower() == "true"

    @property
    def number(self) -> int:
        """
        Container number of this replica.

        :raises InvalidLabelError: If the label is missing or not an integer.
        """
        raw = self.labels.get(CONTAINER_NUMBER_LABEL)
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise InvalidLabelError(self.id, CONTAINER_NUMBER_LABEL, raw) from None

    @property
    def canonical_name(self) -> str:
        """
        The container's own name. Runtimes also list link aliases such as
        `/web/db`, those are skipped.
        """
        for name in self.names:
            if name.rfind("/") <= 0:
                return name.lstrip("/")
        if self.names:
            return self.names[0].lstrip("/")
        return self.short_id

    @property
    def name_without_project(self) -> str:
        name = self.canonical_name
        prefix = f"{self.project}_{self.service}_"
        if name.startswith(prefix):
            return name[len(self.project) + 1:]
        return name

    @property
    def progress_name(self) -> str:
        return f"Container {self.canonical_name}"


class ContainerDetails(Container):
    """
    Result of inspecting a single container.
    `health` is None when the container has no healthcheck configured.
    """
    exit_code: int = 0
    health: Optional[HealthStatus] = None

    def to_summary(self) -> Container:
        return Container(
            id=self.id,
            names=list(self.names),
            labels=dict(self.labels),
            state=self.state,
            networks={k: v.model_copy() for k, v in self.networks.items()},
        )


class EndpointSpec(BaseModel):
    """
    Network attachment requested at creation or connection time.
    """
    aliases: List[str] = []
    ipv4_address: Optional[str] = None
    ipv6_address: Optional[str] = None
    links: List[str] = []


class ContainerCreateSpec(BaseModel):
    """
    Everything the engine asks the runtime to create a container with.
    """
    name: str
    image: str
    command: List[str] = []
    entrypoint: List[str] = []
    environment: Dict[str, str] = {}
    labels: Dict[str, str] = {}
    platform: Optional[str] = None
    healthcheck: Optional[Dict[str, Any]] = None
    restart_policy: Optional[str] = None
    auto_remove: bool = False
    network: Optional[str] = None
    endpoint: Optional[EndpointSpec] = None
    inherit_from: Optional[str] = None

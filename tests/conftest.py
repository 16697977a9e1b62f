"""
Shared fixtures: an in-memory container runtime and a recording progress writer.
"""
import itertools
import threading
from typing import Dict, List, Optional

import pytest

from dconverge.MANAGERS.progress import Event, ProgressWriter
from dconverge.MODELS.container import (
    CONFIG_HASH_LABEL,
    CONTAINER_NUMBER_LABEL,
    ONE_OFF_LABEL,
    PROJECT_LABEL,
    SERVICE_LABEL,
    Container,
    ContainerCreateSpec,
    ContainerDetails,
    ContainerState,
    HealthStatus,
    NetworkEndpoint,
)
from dconverge.RUNTIME.client import RuntimeClient


class FakeRuntimeError(Exception):
    pass


class FakeRuntimeClient(RuntimeClient):
    """
    Keeps containers in a dict and records every mutating call.

    Set `failures[method] = exc` to make a method raise.
    Set `exit_on_start[service] = code` to make containers of a service run
    to completion as soon as they are started.
    """

    def __init__(self):
        self.containers: Dict[str, ContainerDetails] = {}
        self.specs: Dict[str, ContainerCreateSpec] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.exit_on_start: Dict[str, int] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def _record(self, method: str, *args) -> None:
        with self._lock:
            self.calls.append((method,) + args)
        if method in self.failures:
            raise self.failures[method]

    def _new_id(self) -> str:
        return f"{next(self._ids):012d}" + "a" * 52

    def calls_to(self, method: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == method]

    def add_container(self,
                      project: str,
                      service: str,
                      number: int,
                      state: ContainerState = ContainerState.RUNNING,
                      config_hash: str = "",
                      name: Optional[str] = None,
                      one_off: bool = False,
                      health: Optional[HealthStatus] = None,
                      exit_code: int = 0,
                      networks: Optional[Dict[str, NetworkEndpoint]] = None) -> ContainerDetails:
        """
        Seeds a container as if an earlier run had created it.
        """
        container_id = self._new_id()
        details = ContainerDetails(
            id=container_id,
            names=["/" + (name or f"{project}_{service}_{number}")],
            labels={
                PROJECT_LABEL: project,
                SERVICE_LABEL: service,
                CONFIG_HASH_LABEL: config_hash,
                CONTAINER_NUMBER_LABEL: str(number),
                ONE_OFF_LABEL: "True" if one_off else "False",
            },
            state=state,
            networks=networks or {},
            exit_code=exit_code,
            health=health,
        )
        with self._lock:
            self.containers[container_id] = details
        return details

    def by_name(self, name: str) -> ContainerDetails:
        for details in self.containers.values():
            if details.canonical_name == name:
                return details
        raise KeyError(name)

    def list_containers(self,
                        project_name: str,
                        services: Optional[List[str]] = None,
                        one_off: Optional[bool] = False,
                        include_stopped: bool = True) -> List[Container]:
        with self._lock:
            found = []
            for details in self.containers.values():
                if details.project != project_name:
                    continue
                if services and details.service not in services:
                    continue
                if one_off is not None and details.is_one_off != one_off:
                    continue
                if not include_stopped and details.state != ContainerState.RUNNING:
                    continue
                found.append(details.to_summary())
            return found

    def inspect_container(self, container_id: str) -> ContainerDetails:
        with self._lock:
            if container_id not in self.containers:
                raise FakeRuntimeError(f"no such container: {container_id}")
            return self.containers[container_id].model_copy(deep=True)

    def create_container(self, spec: ContainerCreateSpec) -> str:
        self._record("create", spec.name)
        with self._lock:
            if any(d.canonical_name == spec.name for d in self.containers.values()):
                raise FakeRuntimeError(f"name {spec.name} already in use")
            container_id = self._new_id()
            networks = {}
            if spec.network:
                aliases = list(spec.endpoint.aliases) if spec.endpoint else []
                networks[spec.network] = NetworkEndpoint(aliases=aliases + [container_id[:12]])
            self.containers[container_id] = ContainerDetails(
                id=container_id,
                names=["/" + spec.name],
                labels=dict(spec.labels),
                state=ContainerState.CREATED,
                networks=networks,
            )
            self.specs[container_id] = spec
            return container_id

    def start_container(self, container_id: str) -> None:
        self._record("start", container_id)
        with self._lock:
            details = self.containers[container_id]
            if details.service in self.exit_on_start:
                details.state = ContainerState.EXITED
                details.exit_code = self.exit_on_start[details.service]
            else:
                details.state = ContainerState.RUNNING

    def stop_container(self, container_id: str, timeout: Optional[float] = None) -> None:
        self._record("stop", container_id, timeout)
        with self._lock:
            self.containers[container_id].state = ContainerState.EXITED

    def remove_container(self, container_id: str) -> None:
        self._record("remove", container_id)
        with self._lock:
            del self.containers[container_id]

    def rename_container(self, container_id: str, new_name: str) -> None:
        self._record("rename", container_id, new_name)
        with self._lock:
            self.containers[container_id].names = ["/" + new_name]

    def connect_network(self,
                        network: str,
                        container_id: str,
                        aliases: Optional[List[str]] = None,
                        ipv4_address: Optional[str] = None,
                        ipv6_address: Optional[str] = None,
                        links: Optional[List[str]] = None) -> None:
        self._record("connect", network, container_id, list(aliases or []))
        with self._lock:
            self.containers[container_id].networks[network] = NetworkEndpoint(
                aliases=list(aliases or []), ip_address=ipv4_address, ipv6_address=ipv6_address
            )

    def disconnect_network(self, network: str, container_id: str, force: bool = False) -> None:
        self._record("disconnect", network, container_id)
        with self._lock:
            self.containers[container_id].networks.pop(network, None)


class RecordingWriter(ProgressWriter):
    def __init__(self):
        self.recorded: List[Event] = []
        self._lock = threading.Lock()

    def event(self, event: Event) -> None:
        with self._lock:
            self.recorded.append(event)

    def texts(self, event_id: str) -> List[str]:
        return [e.text for e in self.recorded if e.id == event_id]


@pytest.fixture
def client():
    return FakeRuntimeClient()


@pytest.fixture
def writer():
    return RecordingWriter()

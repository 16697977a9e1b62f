"""
Observed-state cache of a project's containers for the duration of one operation.
"""
import logging
import threading
from typing import Callable, Iterable, List

from ..MODELS.container import Container, ContainerState
from ..RUNTIME.client import RuntimeClient

logger = logging.getLogger(__name__)

ContainerPredicate = Callable[[Container], bool]


def is_service(*names: str) -> ContainerPredicate:
    def predicate(container: Container) -> bool:
        return container.service in names
    return predicate


def is_not_one_off(container: Container) -> bool:
    return not container.is_one_off


def is_in_state(state: ContainerState) -> ContainerPredicate:
    def predicate(container: Container) -> bool:
        return container.state == state
    return predicate


def is_not_in_state(state: ContainerState) -> ContainerPredicate:
    def predicate(container: Container) -> bool:
        return container.state != state
    return predicate


class Containers(list):
    """
    A list of containers with predicate filtering.
    """

    def filter(self, *predicates: ContainerPredicate) -> "Containers":
        return Containers(c for c in self if all(p(c) for p in predicates))

    def ids(self) -> List[str]:
        return [c.id for c in self]


class ContainerStateSnapshot:
    """
    The containers of one project, read once at the start of an operation and
    updated by the engine as it creates and removes containers. It is never
    re-synced with the runtime, changes made by others during the operation
    are not seen.
    """

    def __init__(self, project_name: str, containers: Iterable[Container] = ()):
        self.project_name = project_name
        self._containers: List[Container] = list(containers)
        self._lock = threading.Lock()

    @classmethod
    def load(cls, client: RuntimeClient, project_name: str) -> "ContainerStateSnapshot":
        """
        Takes a snapshot of every container of the project, one-off and stopped included.
        """
        containers = client.list_containers(project_name, one_off=None, include_stopped=True)
        logger.debug("snapshot of project %s: %d containers", project_name, len(containers))
        return cls(project_name, containers)

    def get_containers(self) -> Containers:
        with self._lock:
            return Containers(self._containers)

    def add(self, container: Container) -> None:
        with self._lock:
            self._containers.append(container)

    def remove(self, container_id: str) -> None:
        with self._lock:
            self._containers = [c for c in self._containers if c.id != container_id]

"""
Reconciliation of the number of replicas of a service.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from ..MODELS.container import Container
from ..MODELS.errors import InvalidScaleError
from ..MODELS.project import Project
from ..MODELS.service_definition import ServiceConfig
from ..RUNNERS.task_group import CancelToken, TaskGroup
from .container_manager import ContainerManager
from .container_state import ContainerStateSnapshot, is_not_one_off, is_service
from .network_manager import container_name

logger = logging.getLogger(__name__)


def get_scale(service: ServiceConfig) -> int:
    """
    Desired number of replicas. An explicit scale wins over deploy replicas,
    the default is 1.

    :raises InvalidScaleError: If the result is below 1, or above 1 while a
        fixed container name is set.
    """
    scale = 1
    if service.deploy is not None and service.deploy.replicas is not None:
        scale = service.deploy.replicas
    if service.scale:
        scale = service.scale
    if scale > 1 and service.container_name:
        raise InvalidScaleError(
            service.name,
            f"the {service.name!r} service is using the custom container name "
            f"{service.container_name!r}, container names must be unique: "
            f"remove the custom name to scale the service",
        )
    if scale < 1:
        raise InvalidScaleError(service.name, f"invalid scale {scale} for service {service.name!r}")
    return scale


def next_container_number(containers: Sequence[Container]) -> int:
    """
    One above the highest container number in use, 1 for none.
    """
    return max((c.number for c in containers), default=0) + 1


def retained_containers(containers: Sequence[Container], scale: int) -> List[Container]:
    """
    The containers kept when scaling down to `scale`: the lowest numbers,
    i.e. the oldest replicas.
    """
    if len(containers) <= scale:
        return list(containers)
    return sorted(containers, key=lambda c: c.number)[:scale]


class ScaleReconciler:
    """
    Creates missing replicas and removes surplus ones.
    """

    def __init__(self, snapshot: ContainerStateSnapshot, containers: ContainerManager):
        self.snapshot = snapshot
        self.containers = containers

    def observed(self, service: ServiceConfig) -> List[Container]:
        return self.snapshot.get_containers().filter(is_service(service.name), is_not_one_off)

    def ensure_scale(self,
                     project: Project,
                     service: ServiceConfig,
                     timeout: Optional[float] = None,
                     cancel: Optional[CancelToken] = None) -> Tuple[TaskGroup, List[Container]]:
        """
        Schedules the creations or removals that bring the service to its scale.

        The returned group is not waited for, callers add their own work to it
        and wait once.

        :return: The task group and the containers kept for further convergence.
        :raises InvalidScaleError: Before anything is scheduled.
        """
        actual = self.observed(service)
        scale = get_scale(service)
        group = TaskGroup(cancel)

        if len(actual) < scale:
            next_number = next_container_number(actual)
            missing = scale - len(actual)
            logger.debug("service %s: creating %d replica(s) from #%d", service.name, missing, next_number)
            for number in range(next_number, next_number + missing):
                name = container_name(project.name, service, number)
                group.go(self.containers.create_container, project, service, name, number)

        if len(actual) > scale:
            retained = retained_containers(actual, scale)
            kept = {c.id for c in retained}
            for container in actual:
                if container.id not in kept:
                    group.go(self.containers.stop_and_remove, container, timeout)
            actual = retained

        return group, actual

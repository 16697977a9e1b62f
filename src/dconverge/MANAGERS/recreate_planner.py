"""
Decides, per existing container, whether convergence keeps, starts or recreates it.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Set

from ..MODELS.container import Container, ContainerState
from ..MODELS.convergence_options import RecreatePolicy
from ..MODELS.project import Project
from ..MODELS.service_definition import ServiceConfig
from ..RUNNERS.dependency_resolver import DependencyResolver
from .container_state import ContainerStateSnapshot, is_not_one_off, is_service
from .scale_reconciler import get_scale, retained_containers

logger = logging.getLogger(__name__)


class ContainerAction(str, Enum):
    RECREATE = "recreate"
    START = "start"
    REPORT_RUNNING = "report-running"
    REPORT_CREATED = "report-created"
    SKIP = "skip"
    NONE = "none"


@dataclass(frozen=True)
class RecreatePlan:
    """
    Recreate directive for one convergence pass.

    `forced` holds the services that must be recreated because one of their
    dependencies is, their links and addresses would otherwise be stale.
    """
    policy: RecreatePolicy
    expected: Dict[str, str] = field(default_factory=dict)
    forced: FrozenSet[str] = frozenset()
    recreated: FrozenSet[str] = frozenset()

    def diverged(self, service: ServiceConfig, container: Container) -> bool:
        return container.config_hash != self.expected.get(service.name)

    def decide(self, service: ServiceConfig, container: Container) -> ContainerAction:
        if self.policy == RecreatePolicy.NEVER:
            return ContainerAction.NONE
        if (self.policy == RecreatePolicy.FORCE
                or service.name in self.forced
                or self.diverged(service, container)):
            return ContainerAction.RECREATE

        state = container.state
        if state == ContainerState.RUNNING:
            return ContainerAction.REPORT_RUNNING
        if state in (ContainerState.CREATED, ContainerState.RESTARTING):
            return ContainerAction.NONE
        if state == ContainerState.EXITED:
            return ContainerAction.REPORT_CREATED
        if state in (ContainerState.PAUSED, ContainerState.REMOVING):
            return ContainerAction.SKIP
        if state in (ContainerState.DEAD, ContainerState.OTHER):
            return ContainerAction.START
        raise ValueError(f"unhandled container state {state!r}")


class RecreatePlanner:
    """
    Builds the RecreatePlan of a pass from the snapshot taken at its start.
    """

    def __init__(self, hasher: Callable[[ServiceConfig], str], resolver: Optional[DependencyResolver] = None):
        self.hasher = hasher
        self.resolver = resolver or DependencyResolver()

    def plan(self,
             project: Project,
             snapshot: ContainerStateSnapshot,
             services: Iterable[str],
             policy: RecreatePolicy) -> RecreatePlan:
        """
        :param services: Names of the services converged in this pass.
        :raises InvalidDependencyGraphError: If the project has a dependency cycle.
        :raises InvalidScaleError: If a targeted service has an invalid scale.
        """
        targets = set(services)
        expected = {name: self.hasher(project.get_service(name)) for name in targets}
        if policy == RecreatePolicy.NEVER:
            return RecreatePlan(policy, expected)

        containers = snapshot.get_containers()
        recreated: Set[str] = set()
        forced: Set[str] = set()
        for name in self.resolver.resolve_order(project):
            if name not in targets:
                continue
            service = project.get_service(name)
            if any(dep in recreated for dep in service.get_dependencies()):
                forced.add(name)
            retained = retained_containers(
                containers.filter(is_service(name), is_not_one_off), get_scale(service)
            )
            if not retained:
                continue
            if (policy == RecreatePolicy.FORCE
                    or name in forced
                    or any(c.config_hash != expected[name] for c in retained)):
                recreated.add(name)

        if forced:
            logger.debug("dependents forced to recreate: %s", ", ".join(sorted(forced)))
        return RecreatePlan(policy, expected, frozenset(forced), frozenset(recreated))

# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Orchestration of a whole project: converge, start and restart its services in
dependency order.
"""
import logging
from typing import Callable, List, Optional

from ..MODELS.container import ContainerState
from ..MODELS.convergence_options import RestartOptions, UpOptions
from ..MODELS.errors import NoSuchServiceError
from ..MODELS.project import Project
from ..MODELS.service_definition import ServiceConfig
from ..RUNTIME.client import RuntimeClient
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..RUNNERS.task_group import CancelToken, TaskGroup
from ..UTILS.config_hash import service_hash
from ..settings import settings
from . import progress
from .container_manager import ContainerManager
from .container_state import ContainerStateSnapshot, is_not_one_off, is_service
from .dependency_waiter import DependencyWaiter
from .network_manager import NetworkManager
from .progress import NoopProgressWriter, ProgressWriter
from .recreate_planner import ContainerAction, RecreatePlan, RecreatePlanner
from .scale_reconciler import ScaleReconciler, get_scale

logger = logging.getLogger(__name__)


class ServiceOrchestrator:
    """
    Converges the containers of a project toward its desired state.

    Every operation takes a fresh snapshot of the project's containers and
    derives all of its decisions from it, so an operation that failed half way
    can simply be run again.
    """

    def __init__(self,
                 client: RuntimeClient,
                 writer: Optional[ProgressWriter] = None,
                 hasher: Callable[[ServiceConfig], str] = service_hash,
                 poll_interval: Optional[float] = None):
        """
        Initializes the orchestrator.

        :param client: The container runtime.
        :param writer: Progress sink, events are dropped when None.
        :param hasher: Config-hash function stored on and compared against containers.
        :param poll_interval: Seconds between dependency condition polls.
        """
        self.client = client
        self.writer = writer or NoopProgressWriter()
        self.hasher = hasher
        self.resolver = DependencyResolver()
        self.waiter = DependencyWaiter(client, poll_interval)

    def _targets(self, project: Project, services: List[str]) -> List[str]:
        if not services:
            return project.service_names()
        for name in services:
            if project.get_service(name) is None:
                raise NoSuchServiceError(name)
        return list(services)

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return settings.stop_timeout_s if timeout is None else timeout

    def _container_manager(self, snapshot: ContainerStateSnapshot) -> ContainerManager:
        network_manager = NetworkManager(self.client, snapshot)
        return ContainerManager(self.client, snapshot, network_manager, self.writer, self.hasher)

    def up(self, project: Project, options: Optional[UpOptions] = None,
           cancel: Optional[CancelToken] = None):
        """
        Converges the targeted services, then starts them.
        """
        options = options or UpOptions()
        self.converge(project, options, cancel)
        if not options.no_start:
            self.start(project, options.services, cancel)

    def converge(self, project: Project, options: Optional[UpOptions] = None,
                 cancel: Optional[CancelToken] = None):
        """
        Brings every targeted service to its scale and configuration, in
        dependency order. Containers are created but not started.

        :raises InvalidDependencyGraphError: Before any change, on a dependency cycle.
        :raises InvalidScaleError: Before any change, on an invalid scale.
        """
        options = options or UpOptions()
        targets = set(self._targets(project, options.services))
        self.resolver.resolve_order(project)
        for name in targets:
            get_scale(project.get_service(name))

        snapshot = ContainerStateSnapshot.load(self.client, project.name)
        plan = RecreatePlanner(self.hasher, self.resolver).plan(project, snapshot, targets, options.recreate)
        containers = self._container_manager(snapshot)
        scaler = ScaleReconciler(snapshot, containers)

        def converge_service(service: ServiceConfig, token: CancelToken):
            if service.name in targets:
                self.ensure_service(project, service, plan, scaler, options, token)

        self.resolver.in_dependency_order(project, converge_service, cancel)

    def ensure_service(self,
                       project: Project,
                       service: ServiceConfig,
                       plan: RecreatePlan,
                       scaler: ScaleReconciler,
                       options: UpOptions,
                       cancel: Optional[CancelToken] = None):
        """
        Scales one service and applies the recreate plan to the containers it keeps.
        """
        timeout = self._timeout(options.timeout)
        group, actual = scaler.ensure_scale(project, service, timeout, cancel)
        containers = scaler.containers

        for container in actual:
            name = container.progress_name
            action = plan.decide(service, container)
            if action == ContainerAction.RECREATE:
                group.go(containers.recreate_container, project, service, container,
                         options.inherit, timeout)
            elif action == ContainerAction.START:
                group.go(containers.start_container, container)
            elif action == ContainerAction.REPORT_RUNNING:
                self.writer.event(progress.running_event(name))
            elif action == ContainerAction.REPORT_CREATED:
                self.writer.event(progress.created_event(name))
            elif action == ContainerAction.SKIP:
                logger.warning("%s is %s, leaving it as is", name, container.state.value)
                self.writer.event(progress.skipped_event(name, f"Skipped ({container.state.value})"))

        group.wait()

    def start(self, project: Project, services: Optional[List[str]] = None,
              cancel: Optional[CancelToken] = None):
        """
        Starts the containers of the targeted services in dependency order,
        once each service's dependency conditions hold.
        """
        targets = set(self._targets(project, services or []))
        self.resolver.resolve_order(project)
        snapshot = ContainerStateSnapshot.load(self.client, project.name)
        containers = self._container_manager(snapshot)

        def start_service(service: ServiceConfig, token: CancelToken):
            if service.name not in targets:
                return
            self.waiter.wait_dependencies(project, service, token)
            group = TaskGroup(token)
            for container in snapshot.get_containers().filter(is_service(service.name), is_not_one_off):
                if container.state != ContainerState.RUNNING:
                    group.go(containers.run_container, container)
            group.wait()

        self.resolver.in_dependency_order(project, start_service, cancel)

    def restart(self, project: Project, options: Optional[RestartOptions] = None,
                cancel: Optional[CancelToken] = None):
        """
        Restarts every container of the targeted services in dependency order.
        """
        options = options or RestartOptions()
        targets = set(self._targets(project, options.services))
        timeout = self._timeout(options.timeout)
        snapshot = ContainerStateSnapshot.load(self.client, project.name)
        containers = self._container_manager(snapshot)

        def restart_service(service: ServiceConfig, token: CancelToken):
            if service.name not in targets:
                return
            group = TaskGroup(token)
            for container in snapshot.get_containers().filter(is_service(service.name), is_not_one_off):
                group.go(containers.restart_container, container, timeout)
            group.wait()

        self.resolver.in_dependency_order(project, restart_service, cancel)

"""
Dependency resolution for services: startup order and dependency-ordered execution.
"""
import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Set

from ..MODELS.errors import InvalidDependencyGraphError, OperationCancelledError
from ..MODELS.project import Project
from ..MODELS.service_definition import ServiceConfig
from ..settings import settings
from .task_group import CancelToken

logger = logging.getLogger(__name__)

ServiceFunc = Callable[[ServiceConfig, CancelToken], None]


class DependencyResolver:
    """
    Resolves the startup order of services and runs work over them in that order.
    """

    def _dependencies(self, project: Project) -> Dict[str, Set[str]]:
        names = set(project.service_names())
        # Only depend on services defined in the project
        return {s.name: {d for d in s.get_dependencies() if d in names} for s in project.services}

    def resolve_order(self, project: Project) -> List[str]:
        """
        Determines a valid startup order using topological sort.

        :param project: The project.
        :return: Service names, each after all of its dependencies.
        :raises InvalidDependencyGraphError: If a circular dependency is detected.
        """
        dependencies = self._dependencies(project)

        ordered = []
        visited = set()
        processing = set()

        def visit(name):
            if name in processing:
                raise InvalidDependencyGraphError(name)
            if name not in visited:
                processing.add(name)
                for dep in sorted(dependencies[name]):
                    visit(dep)
                processing.remove(name)
                visited.add(name)
                ordered.append(name)

        for name in dependencies:
            visit(name)

        return ordered

    def in_dependency_order(self,
                            project: Project,
                            fn: ServiceFunc,
                            cancel: Optional[CancelToken] = None,
                            max_workers: Optional[int] = None) -> None:
        """
        Calls `fn(service, token)` for every service of the project. A service
        is started only once all of its dependencies returned successfully;
        services whose dependencies are satisfied run concurrently.

        On the first failure the shared token is cancelled and nothing new is
        started, calls already running are waited for, then the failure is raised.

        :param project: The project whose services are visited.
        :param fn: Work to run per service.
        :param cancel: Token of the enclosing scope.
        :param max_workers: Thread limit, defaults to the configured concurrency.
        :raises InvalidDependencyGraphError: Before any call, if the graph has a cycle.
        """
        self.resolve_order(project)

        token = CancelToken(cancel)
        pending = self._dependencies(project)
        services = {s.name: s for s in project.services}
        done: Set[str] = set()
        running: Dict[Future, str] = {}
        error: Optional[BaseException] = None

        with ThreadPoolExecutor(max_workers=max_workers or settings.max_concurrency,
                                thread_name_prefix="dconverge-graph") as executor:

            def schedule_ready():
                for name in [n for n, deps in pending.items() if deps <= done]:
                    del pending[name]
                    logger.debug("visiting service %s", name)
                    running[executor.submit(fn, services[name], token)] = name

            schedule_ready()
            while running:
                finished, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for future in finished:
                    name = running.pop(future)
                    exc = future.exception()
                    if exc is None:
                        done.add(name)
                    elif error is None:
                        error = exc
                        token.cancel()
                if error is None and not token.cancelled:
                    schedule_ready()

        if error is not None:
            raise error
        if pending:
            raise OperationCancelledError()

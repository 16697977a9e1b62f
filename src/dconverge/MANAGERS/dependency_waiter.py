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
Waiting for the depends_on conditions of a service: started, healthy, or
completed successfully.
"""
import logging
from typing import Optional, Tuple

from ..MODELS.container import ContainerState, HealthStatus
from ..MODELS.errors import DependencyFailedError, MissingHealthcheckError, OperationCancelledError
from ..MODELS.project import Project
from ..MODELS.service_definition import ServiceCondition, ServiceConfig
from ..RUNTIME.client import RuntimeClient
from ..RUNNERS.task_group import CancelToken, TaskGroup
from ..settings import settings

logger = logging.getLogger(__name__)


class DependencyWaiter:
    """
    Polls the runtime until the dependencies of a service satisfy their
    conditions.

    There is no built-in timeout: a wait ends when the condition holds, when
    it can never hold, or when the caller's token is cancelled. Callers that
    need a deadline cancel the token themselves.
    """

    def __init__(self, client: RuntimeClient, interval: Optional[float] = None):
        """
        :param client: Runtime to inspect dependencies on.
        :param interval: Seconds between two polls of one dependency.
        """
        self.client = client
        self.interval = settings.poll_interval_s if interval is None else interval

    def wait_dependencies(self,
                          project: Project,
                          service: ServiceConfig,
                          cancel: Optional[CancelToken] = None) -> None:
        """
        Waits for every dependency of the service concurrently.

        :raises DependencyConditionError: If a dependency cannot satisfy its condition.
        :raises OperationCancelledError: If the token is cancelled first.
        """
        group = TaskGroup(cancel)
        for dep, config in service.depends_on.items():
            group.go(self.wait_for, project.name, dep, config.condition, group.token)
        group.wait()

    def wait_for(self, project_name: str, dep: str, condition: str, cancel: CancelToken) -> None:
        """
        Waits for one dependency to satisfy one condition.
        """
        if condition == ServiceCondition.STARTED:
            # Dependency order already guarantees it
            return
        if condition not in (ServiceCondition.HEALTHY, ServiceCondition.COMPLETED_SUCCESSFULLY):
            logger.warning("unsupported depends_on condition: %s", condition)
            return

        while True:
            cancel.raise_if_cancelled()
            if condition == ServiceCondition.HEALTHY:
                if self.is_service_healthy(project_name, dep):
                    return
            else:
                exited, code = self.is_service_completed(project_name, dep)
                if exited:
                    if code != 0:
                        raise DependencyFailedError(dep, code)
                    return
            logger.debug("waiting for %s to be %s", dep, condition)
            if cancel.wait(self.interval):
                raise OperationCancelledError(f"cancelled while waiting for {dep}")

    def is_service_healthy(self, project_name: str, service: str) -> bool:
        """
        True when the service has running containers and all of them report healthy.

        :raises MissingHealthcheckError: If a container has no healthcheck.
        """
        containers = self.client.list_containers(project_name, services=[service],
                                                 one_off=False, include_stopped=False)
        if not containers:
            return False
        for c in containers:
            details = self.client.inspect_container(c.id)
            if details.health is None:
                raise MissingHealthcheckError(service)
            if details.health != HealthStatus.HEALTHY:
                return False
        return True

    def is_service_completed(self, project_name: str, service: str) -> Tuple[bool, int]:
        """
        :return: Whether a container of the service has exited, and its exit code.
        """
        containers = self.client.list_containers(project_name, services=[service],
                                                 one_off=False, include_stopped=True)
        for c in containers:
            details = self.client.inspect_container(c.id)
            if details.state == ContainerState.EXITED:
                return True, details.exit_code
        return False, 0

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
Lifecycle management for individual containers: create, start, stop, remove and recreate.
"""
import logging
from typing import Callable, Dict, Optional

from .. import __version__
from ..MODELS.container import (
    CONFIG_HASH_LABEL,
    CONTAINER_NUMBER_LABEL,
    ONE_OFF_LABEL,
    PROJECT_LABEL,
    SERVICE_LABEL,
    VERSION_LABEL,
    Container,
    ContainerCreateSpec,
)
from ..MODELS.project import Project
from ..MODELS.service_definition import ServiceConfig
from ..RUNTIME.client import RuntimeClient
from .container_state import ContainerStateSnapshot
from .network_manager import NetworkManager
from . import progress
from .progress import ProgressWriter

logger = logging.getLogger(__name__)


class ContainerManager:
    """
    Performs the runtime calls behind each container lifecycle step, keeps the
    snapshot in line with them and reports progress.
    """

    def __init__(self,
                 client: RuntimeClient,
                 snapshot: ContainerStateSnapshot,
                 network_manager: NetworkManager,
                 writer: ProgressWriter,
                 hasher: Callable[[ServiceConfig], str]):
        """
        :param client: The container runtime.
        :param snapshot: Observed containers of the current operation.
        :param network_manager: Used to attach new containers to their networks.
        :param writer: Progress sink.
        :param hasher: Config-hash function whose output is stored on every container.
        """
        self.client = client
        self.snapshot = snapshot
        self.network_manager = network_manager
        self.writer = writer
        self.hasher = hasher

    def _labels(self, project: Project, service: ServiceConfig, number: int) -> Dict[str, str]:
        labels = dict(service.labels)
        labels.update({
            PROJECT_LABEL: project.name,
            SERVICE_LABEL: service.name,
            CONFIG_HASH_LABEL: self.hasher(service),
            CONTAINER_NUMBER_LABEL: str(number),
            ONE_OFF_LABEL: "False",
            VERSION_LABEL: __version__,
        })
        return labels

    def create_container(self,
                         project: Project,
                         service: ServiceConfig,
                         name: str,
                         number: int,
                         auto_remove: bool = False,
                         use_network_aliases: bool = True) -> Container:
        """
        Creates replica `number` of a service under `name`, reporting progress.
        """
        event_name = f"Container {name}"
        self.writer.event(progress.creating_event(event_name))
        created = self.create_runtime_container(project, service, name, number,
                                                auto_remove=auto_remove,
                                                use_network_aliases=use_network_aliases)
        self.writer.event(progress.created_event(event_name))
        return created

    def create_runtime_container(self,
                                 project: Project,
                                 service: ServiceConfig,
                                 name: str,
                                 number: int,
                                 inherit: Optional[Container] = None,
                                 auto_remove: bool = False,
                                 use_network_aliases: bool = True) -> Container:
        """
        Creates the container, records it in the snapshot and attaches it to
        the service's networks. The first network is joined at creation.

        :param inherit: Container whose volumes the new one takes over.
        :return: The created container as inspected after creation.
        """
        links = self.network_manager.get_links(service)
        primary = service.networks_by_priority()[0]
        spec = ContainerCreateSpec(
            name=name,
            image=service.image,
            command=service.command,
            entrypoint=service.entrypoint,
            environment=service.environment,
            labels=self._labels(project, service, number),
            platform=service.platform,
            healthcheck=service.health_check.model_dump() if service.health_check else None,
            restart_policy=service.restart_policy.value,
            auto_remove=auto_remove,
            network=project.network_name(primary),
            endpoint=self.network_manager.endpoint(project, service, primary, number, links,
                                                   use_network_aliases),
            inherit_from=inherit.id if inherit is not None else None,
        )
        container_id = self.client.create_container(spec)
        logger.debug("created container %s for %s", container_id[:12], name)

        created = self.client.inspect_container(container_id).to_summary()
        self.snapshot.add(created)
        self.network_manager.connect_container(project, service, created, number, links,
                                               use_network_aliases)
        return created

    def recreate_container(self,
                           project: Project,
                           service: ServiceConfig,
                           container: Container,
                           inherit: bool = True,
                           timeout: Optional[float] = None) -> Container:
        """
        Replaces a container with a new one built from the current service
        configuration, keeping its name and container number.

        The old container is stopped and renamed out of the way before the
        replacement is created, and removed once it exists.
        """
        event_name = container.progress_name
        number = container.number
        name = container.canonical_name

        self.writer.event(progress.recreating_event(event_name))
        self.client.stop_container(container.id, timeout)
        self.client.rename_container(container.id, f"{container.short_id}_{name}")
        replacement = self.create_runtime_container(
            project, service, name, number, inherit=container if inherit else None
        )
        self.client.remove_container(container.id)
        self.snapshot.remove(container.id)
        self.writer.event(progress.recreated_event(event_name))
        return replacement

    def start_container(self, container: Container) -> None:
        """
        Starts a container found in a state that needs it during convergence.
        """
        event_name = container.progress_name
        self.writer.event(progress.restarting_event(event_name))
        self.client.start_container(container.id)
        self.writer.event(progress.restarted_event(event_name))

    def run_container(self, container: Container) -> None:
        """
        Starts a converged container.
        """
        event_name = container.progress_name
        self.writer.event(progress.starting_event(event_name))
        self.client.start_container(container.id)
        self.writer.event(progress.started_event(event_name))

    def restart_container(self, container: Container, timeout: Optional[float] = None) -> None:
        event_name = container.progress_name
        self.writer.event(progress.restarting_event(event_name))
        self.client.stop_container(container.id, timeout)
        self.client.start_container(container.id)
        self.writer.event(progress.restarted_event(event_name))

    def stop_and_remove(self, container: Container, timeout: Optional[float] = None) -> None:
        """
        Stops then removes a container no longer wanted, dropping it from the snapshot.
        """
        event_name = container.progress_name
        self.writer.event(progress.stopping_event(event_name))
        self.client.stop_container(container.id, timeout)
        self.writer.event(progress.stopped_event(event_name))
        self.writer.event(progress.removing_event(event_name))
        self.client.remove_container(container.id)
        self.snapshot.remove(container.id)
        self.writer.event(progress.removed_event(event_name))

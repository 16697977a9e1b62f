"""
Network management for containers: naming, aliases, legacy links and attachments.
"""
import logging
from typing import List, Optional

from ..MODELS.container import Container, EndpointSpec
from ..MODELS.project import Project
from ..MODELS.service_definition import ServiceConfig, ServiceNetworkConfig
from ..RUNTIME.client import RuntimeClient
from .container_state import ContainerStateSnapshot, is_service

logger = logging.getLogger(__name__)


def container_name(project_name: str, service: ServiceConfig, number: int) -> str:
    """
    Name of replica `number` of a service. An explicit container name wins.
    """
    if service.container_name:
        return service.container_name
    return f"{project_name}_{service.name}_{number}"


class NetworkManager:
    """
    Computes what a container should look like on each network of its service
    and brings its attachments in line with that.
    """

    def __init__(self, client: RuntimeClient, snapshot: ContainerStateSnapshot):
        """
        :param client: Runtime used to connect and disconnect networks.
        :param snapshot: Observed containers, used to resolve links.
        """
        self.client = client
        self.snapshot = snapshot

    def network_aliases(self,
                        project: Project,
                        service: ServiceConfig,
                        network_key: str,
                        number: int,
                        use_network_aliases: bool = True) -> List[str]:
        """
        Aliases a container gets on one network.

        :param use_network_aliases: Also publish the service name and the declared aliases.
        """
        aliases = [container_name(project.name, service, number)]
        if use_network_aliases:
            aliases.append(service.name)
            cfg = service.networks.get(network_key)
            if cfg is not None:
                aliases.extend(cfg.aliases)
        return aliases

    def endpoint(self,
                 project: Project,
                 service: ServiceConfig,
                 network_key: str,
                 number: int,
                 links: List[str],
                 use_network_aliases: bool = True) -> EndpointSpec:
        cfg: Optional[ServiceNetworkConfig] = service.networks.get(network_key)
        return EndpointSpec(
            aliases=self.network_aliases(project, service, network_key, number, use_network_aliases),
            ipv4_address=cfg.ipv4_address if cfg else None,
            ipv6_address=cfg.ipv6_address if cfg else None,
            links=list(links),
        )

    def get_links(self, service: ServiceConfig) -> List[str]:
        """
        Resolves `target[:alias]` links to every known container of the target
        service. External links are passed through as declared.
        """
        links = []
        containers = self.snapshot.get_containers()
        for service_link in service.links:
            target, _, alias = service_link.partition(":")
            for container in containers.filter(is_service(target)):
                name = container.canonical_name
                if alias:
                    links.append(f"{name}:{alias}")
                links.append(f"{name}:{name}")
                links.append(f"{name}:{container.name_without_project}")
        links.extend(service.external_links)
        return links

    def connect_container(self,
                          project: Project,
                          service: ServiceConfig,
                          container: Container,
                          number: int,
                          links: List[str],
                          use_network_aliases: bool = True) -> None:
        """
        Attaches a freshly created container to every network of its service,
        highest priority first.
        """
        for key in service.networks_by_priority():
            network_name = project.network_name(key)
            desired = self.endpoint(project, service, key, number, links, use_network_aliases)
            self.reconcile_network(container, network_name, desired)

    def reconcile_network(self, container: Container, network_name: str, desired: EndpointSpec) -> bool:
        """
        Makes the container's attachment to one network match `desired`.

        An attachment carrying the container's short ID as alias was made at
        creation time and is left alone, as is one that already has the
        desired aliases. Any other existing attachment is replaced.

        :return: True if the runtime was called.
        """
        current = container.networks.get(network_name)
        if current is not None:
            if container.short_id in current.aliases:
                return False
            if sorted(current.aliases) == sorted(desired.aliases):
                return False
            logger.debug("replacing attachment of %s to %s", container.short_id, network_name)
            self.client.disconnect_network(network_name, container.id, force=False)

        self.client.connect_network(
            network_name,
            container.id,
            aliases=desired.aliases,
            ipv4_address=desired.ipv4_address,
            ipv6_address=desired.ipv6_address,
            links=desired.links,
        )
        return True

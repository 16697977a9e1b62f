"""
RuntimeClient backed by the Docker Engine API through docker-py.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import docker

from ..MODELS.container import (
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
from .client import RuntimeClient

logger = logging.getLogger(__name__)

_NANOSECONDS = 1_000_000_000


def _link_pairs(links: Optional[List[str]]) -> Optional[List[Tuple[str, str]]]:
    if not links:
        return None
    pairs = []
    for link in links:
        name, _, alias = link.partition(":")
        pairs.append((name, alias))
    return pairs


def _endpoints(networks: Optional[Dict[str, Any]]) -> Dict[str, NetworkEndpoint]:
    endpoints = {}
    for name, settings in (networks or {}).items():
        settings = settings or {}
        endpoints[name] = NetworkEndpoint(
            aliases=settings.get("Aliases") or [],
            ip_address=settings.get("IPAddress") or None,
            ipv6_address=settings.get("GlobalIPv6Address") or None,
        )
    return endpoints


class DockerRuntimeClient(RuntimeClient):
    """
    Talks to the Docker daemon. Errors from docker-py (docker.errors.APIError
    and friends) are not translated.
    """

    def __init__(self, api: Optional[docker.APIClient] = None):
        """
        :param api: Low-level client to use, one configured from the environment when None.
        """
        self.api = api or docker.from_env().api

    def list_containers(self,
                        project_name: str,
                        services: Optional[List[str]] = None,
                        one_off: Optional[bool] = False,
                        include_stopped: bool = True) -> List[Container]:
        labels = [f"{PROJECT_LABEL}={project_name}"]
        if one_off is not None:
            labels.append(f"{ONE_OFF_LABEL}={'True' if one_off else 'False'}")
        if services and len(services) == 1:
            labels.append(f"{SERVICE_LABEL}={services[0]}")

        raw = self.api.containers(all=include_stopped, filters={"label": labels})
        containers = [
            Container(
                id=c["Id"],
                names=c.get("Names") or [],
                labels=c.get("Labels") or {},
                state=ContainerState.parse(c.get("State")),
                networks=_endpoints((c.get("NetworkSettings") or {}).get("Networks")),
            )
            for c in raw
        ]
        if services:
            containers = [c for c in containers if c.service in services]
        return containers

    def inspect_container(self, container_id: str) -> ContainerDetails:
        info = self.api.inspect_container(container_id)
        state = info.get("State") or {}
        health = state.get("Health")
        return ContainerDetails(
            id=info["Id"],
            names=[info.get("Name", "")],
            labels=(info.get("Config") or {}).get("Labels") or {},
            state=ContainerState.parse(state.get("Status")),
            networks=_endpoints((info.get("NetworkSettings") or {}).get("Networks")),
            exit_code=state.get("ExitCode") or 0,
            health=HealthStatus(health["Status"]) if health else None,
        )

    def _healthcheck(self, spec: ContainerCreateSpec) -> Optional[Dict[str, Any]]:
        if not spec.healthcheck:
            return None
        hc = spec.healthcheck
        return {
            "test": hc["test"],
            "interval": int(hc["interval"] * _NANOSECONDS),
            "timeout": int(hc["timeout"] * _NANOSECONDS),
            "retries": hc["retries"],
            "start_period": int(hc["start_period"] * _NANOSECONDS),
        }

    def create_container(self, spec: ContainerCreateSpec) -> str:
        restart_policy = None
        if spec.restart_policy and spec.restart_policy != "no":
            restart_policy = {"Name": spec.restart_policy}
        host_config = self.api.create_host_config(
            auto_remove=spec.auto_remove,
            network_mode=spec.network,
            volumes_from=[spec.inherit_from] if spec.inherit_from else None,
            restart_policy=restart_policy,
        )

        networking_config = None
        if spec.network and spec.endpoint:
            networking_config = self.api.create_networking_config({
                spec.network: self.api.create_endpoint_config(
                    aliases=spec.endpoint.aliases,
                    links=_link_pairs(spec.endpoint.links),
                    ipv4_address=spec.endpoint.ipv4_address,
                    ipv6_address=spec.endpoint.ipv6_address,
                )
            })

        created = self.api.create_container(
            spec.image,
            command=spec.command or None,
            name=spec.name,
            environment=spec.environment,
            labels=spec.labels,
            entrypoint=spec.entrypoint or None,
            host_config=host_config,
            networking_config=networking_config,
            healthcheck=self._healthcheck(spec),
            platform=spec.platform,
        )
        for warning in created.get("Warnings") or []:
            logger.warning("%s: %s", spec.name, warning)
        return created["Id"]

    def start_container(self, container_id: str) -> None:
        self.api.start(container_id)

    def stop_container(self, container_id: str, timeout: Optional[float] = None) -> None:
        self.api.stop(container_id, timeout=None if timeout is None else int(timeout))

    def remove_container(self, container_id: str) -> None:
        self.api.remove_container(container_id)

    def rename_container(self, container_id: str, new_name: str) -> None:
        self.api.rename(container_id, new_name)

    def connect_network(self,
                        network: str,
                        container_id: str,
                        aliases: Optional[List[str]] = None,
                        ipv4_address: Optional[str] = None,
                        ipv6_address: Optional[str] = None,
                        links: Optional[List[str]] = None) -> None:
        self.api.connect_container_to_network(
            container_id,
            network,
            aliases=aliases or None,
            links=_link_pairs(links),
            ipv4_address=ipv4_address,
            ipv6_address=ipv6_address,
        )

    def disconnect_network(self, network: str, container_id: str, force: bool = False) -> None:
        self.api.disconnect_container_from_network(container_id, network, force=force)

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
Unit tests for the network manager.
"""
from dconverge.MANAGERS.container_state import ContainerStateSnapshot
from dconverge.MANAGERS.network_manager import NetworkManager, container_name
from dconverge.MODELS.container import EndpointSpec, NetworkEndpoint
from dconverge.MODELS.project import NetworkDefinition, Project
from dconverge.MODELS.service_definition import ServiceConfig, ServiceNetworkConfig


def _manager(client, project_name="app"):
    return NetworkManager(client, ContainerStateSnapshot.load(client, project_name))


class TestContainerName:
    """Tests for container_name."""

    def test_generated_name(self):
        assert container_name("app", ServiceConfig(name="web"), 2) == "app_web_2"

    def test_explicit_name_wins(self):
        assert container_name("app", ServiceConfig(name="web", container_name="frontend"), 2) == "frontend"


class TestNetworkManager:
    """Tests for NetworkManager."""

    def test_aliases(self, client):
        service = ServiceConfig(name="web", networks={"front": ServiceNetworkConfig(aliases=["www"])})
        project = Project(name="app", services=[service])
        mgr = _manager(client)

        assert mgr.network_aliases(project, service, "front", 1) == ["app_web_1", "web", "www"]
        assert mgr.network_aliases(project, service, "front", 1, use_network_aliases=False) == ["app_web_1"]

    def test_endpoint_carries_static_addresses(self, client):
        cfg = ServiceNetworkConfig(ipv4_address="10.0.0.5", ipv6_address="fd00::5")
        service = ServiceConfig(name="web", networks={"front": cfg})
        project = Project(name="app", services=[service])

        endpoint = _manager(client).endpoint(project, service, "front", 1, ["a:b"])
        assert endpoint.ipv4_address == "10.0.0.5"
        assert endpoint.ipv6_address == "fd00::5"
        assert endpoint.links == ["a:b"]

    def test_get_links(self, client):
        client.add_container("app", "db", 1)
        client.add_container("app", "db", 2)
        service = ServiceConfig(name="web", links=["db:database"], external_links=["legacy:old"])

        links = _manager(client).get_links(service)
        assert links == [
            "app_db_1:database", "app_db_1:app_db_1", "app_db_1:db_1",
            "app_db_2:database", "app_db_2:app_db_2", "app_db_2:db_2",
            "legacy:old",
        ]

    def test_get_links_without_alias(self, client):
        client.add_container("app", "db", 1)
        assert _manager(client).get_links(ServiceConfig(name="web", links=["db"])) == [
            "app_db_1:app_db_1", "app_db_1:db_1",
        ]

    def test_skip_when_attached_at_creation(self, client):
        container = client.add_container("app", "web", 1)
        container.networks["net"] = NetworkEndpoint(aliases=["app_web_1", container.short_id])

        changed = _manager(client).reconcile_network(container, "net", EndpointSpec(aliases=["other"]))
        assert changed is False
        assert client.calls == []

    def test_skip_when_aliases_match(self, client):
        container = client.add_container("app", "web", 1)
        container.networks["net"] = NetworkEndpoint(aliases=["web", "app_web_1"])

        changed = _manager(client).reconcile_network(container, "net", EndpointSpec(aliases=["app_web_1", "web"]))
        assert changed is False

    def test_reconnect_when_aliases_differ(self, client):
        container = client.add_container("app", "web", 1, networks={"net": NetworkEndpoint(aliases=["old"])})

        changed = _manager(client).reconcile_network(container, "net", EndpointSpec(aliases=["app_web_1"]))
        assert changed is True
        assert [c[0] for c in client.calls] == ["disconnect", "connect"]
        assert client.containers[container.id].networks["net"].aliases == ["app_web_1"]

    def test_connect_when_not_attached(self, client):
        container = client.add_container("app", "web", 1)

        _manager(client).reconcile_network(container, "net", EndpointSpec(aliases=["app_web_1"]))
        assert client.calls == [("connect", "net", container.id, ["app_web_1"])]

    def test_connect_container_in_priority_order(self, client):
        service = ServiceConfig(name="web", networks={
            "back": ServiceNetworkConfig(priority=1),
            "front": ServiceNetworkConfig(priority=10),
            "admin": None,
        })
        project = Project(name="app", services=[service],
                          networks={"front": NetworkDefinition(name="shared_front", external=True)})
        container = client.add_container("app", "web", 1)

        _manager(client).connect_container(project, service, container, 1, [])
        assert [c[1] for c in client.calls_to("connect")] == ["shared_front", "app_back", "app_admin"]

"""
Unit tests for recreate planning and per-container decisions.
"""
import pytest

from dconverge.MANAGERS.container_state import ContainerStateSnapshot
from dconverge.MANAGERS.recreate_planner import ContainerAction, RecreatePlan, RecreatePlanner
from dconverge.MODELS.container import ContainerState
from dconverge.MODELS.convergence_options import RecreatePolicy
from dconverge.MODELS.project import Project
from dconverge.MODELS.service_definition import ServiceConfig, ServiceDependency
from dconverge.UTILS.config_hash import service_hash


def _project():
    return Project(name="app", services=[
        ServiceConfig(name="db", image="postgres:16"),
        ServiceConfig(name="api", image="api:1", depends_on={"db": ServiceDependency()}),
        ServiceConfig(name="web", image="web:1", depends_on={"api": ServiceDependency()}),
        ServiceConfig(name="cache", image="redis:7"),
    ])


def _seed_up_to_date(client, project):
    for service in project.services:
        client.add_container("app", service.name, 1, config_hash=service_hash(service))


def _plan(client, project, policy=RecreatePolicy.DIVERGED, services=None):
    snapshot = ContainerStateSnapshot.load(client, "app")
    targets = services or project.service_names()
    return RecreatePlanner(service_hash).plan(project, snapshot, targets, policy)


class TestRecreatePlanner:
    """Tests for RecreatePlanner.plan."""

    def test_nothing_diverged(self, client):
        project = _project()
        _seed_up_to_date(client, project)
        plan = _plan(client, project)
        assert plan.recreated == frozenset()
        assert plan.forced == frozenset()

    def test_changed_dependency_cascades_transitively(self, client):
        project = _project()
        _seed_up_to_date(client, project)
        project.services[0] = ServiceConfig(name="db", image="postgres:17")

        plan = _plan(client, project)
        assert plan.recreated == {"db", "api", "web"}
        assert plan.forced == {"api", "web"}

    def test_force_recreates_everything_targeted(self, client):
        project = _project()
        _seed_up_to_date(client, project)
        plan = _plan(client, project, RecreatePolicy.FORCE, services=["cache", "db"])
        assert plan.recreated == {"cache", "db"}

    def test_never_plans_nothing(self, client):
        project = _project()
        client.add_container("app", "db", 1, config_hash="stale")
        plan = _plan(client, project, RecreatePolicy.NEVER)
        assert plan.recreated == frozenset()

    def test_service_without_containers_does_not_cascade(self, client):
        project = _project()
        client.add_container("app", "api", 1, config_hash=service_hash(project.get_service("api")))
        plan = _plan(client, project)
        assert "api" not in plan.forced


class TestRecreatePlan:
    """Tests for RecreatePlan.decide."""

    @pytest.fixture
    def service(self):
        return ServiceConfig(name="web", image="nginx")

    @pytest.fixture
    def plan(self, service):
        return RecreatePlan(RecreatePolicy.DIVERGED, {"web": service_hash(service)})

    @pytest.mark.parametrize("state, action", [
        (ContainerState.RUNNING, ContainerAction.REPORT_RUNNING),
        (ContainerState.CREATED, ContainerAction.NONE),
        (ContainerState.RESTARTING, ContainerAction.NONE),
        (ContainerState.EXITED, ContainerAction.REPORT_CREATED),
        (ContainerState.PAUSED, ContainerAction.SKIP),
        (ContainerState.REMOVING, ContainerAction.SKIP),
        (ContainerState.DEAD, ContainerAction.START),
        (ContainerState.OTHER, ContainerAction.START),
    ])
    def test_up_to_date_container_by_state(self, client, service, plan, state, action):
        container = client.add_container("app", "web", 1, state=state, config_hash=service_hash(service))
        assert plan.decide(service, container) == action

    def test_every_state_is_handled(self, client, service, plan):
        for state in ContainerState:
            container = client.add_container("app", "web", 1, state=state, config_hash=service_hash(service))
            plan.decide(service, container)

    def test_diverged_hash_recreates(self, client, service, plan):
        container = client.add_container("app", "web", 1, config_hash="old")
        assert plan.decide(service, container) == ContainerAction.RECREATE

    def test_forced_service_recreates(self, client, service):
        plan = RecreatePlan(RecreatePolicy.DIVERGED, {"web": service_hash(service)}, frozenset({"web"}))
        container = client.add_container("app", "web", 1, config_hash=service_hash(service))
        assert plan.decide(service, container) == ContainerAction.RECREATE

    def test_never_ignores_divergence(self, client, service):
        plan = RecreatePlan(RecreatePolicy.NEVER, {"web": service_hash(service)})
        container = client.add_container("app", "web", 1, config_hash="old")
        assert plan.decide(service, container) == ContainerAction.NONE

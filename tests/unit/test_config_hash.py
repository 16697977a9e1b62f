from dconverge.MODELS.service_definition import DeployConfig, ServiceConfig, ServiceDependency
from dconverge.UTILS.config_hash import service_hash


def test_hash_is_stable():
    service = ServiceConfig(name="web", image="nginx", environment={"A": "1", "B": "2"})
    same = ServiceConfig(name="web", image="nginx", environment={"B": "2", "A": "1"})
    assert service_hash(service) == service_hash(same)
    assert len(service_hash(service)) == 64


def test_runtime_relevant_change_changes_hash():
    assert service_hash(ServiceConfig(name="web", image="nginx:1")) != \
        service_hash(ServiceConfig(name="web", image="nginx:2"))


def test_scale_and_dependencies_do_not_change_hash():
    base = ServiceConfig(name="web", image="nginx")
    scaled = ServiceConfig(name="web", image="nginx", scale=3, deploy=DeployConfig(replicas=5),
                           depends_on={"db": ServiceDependency()})
    assert service_hash(base) == service_hash(scaled)

"""
Fingerprint of a service's desired configuration.
"""
import hashlib
import json

from ..MODELS.service_definition import ServiceConfig

# Fields that change how many containers run or in which order, not what a container is
_EXCLUDED_FIELDS = {"scale", "depends_on"}


def service_hash(service: ServiceConfig) -> str:
    """
    Returns a SHA-256 hex digest of the service configuration. Two services
    with the same hash produce interchangeable containers.
    """
    data = service.model_dump(mode="json", exclude=_EXCLUDED_FIELDS)
    deploy = data.get("deploy") or {}
    deploy.pop("replicas", None)
    data["deploy"] = deploy or None
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode()).hexdigest()

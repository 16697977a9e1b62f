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
Parsers for Docker Compose YAML files.
"""
import os
import re
import shlex
from typing import Dict, Any, List, Optional

import yaml
from dotenv import dotenv_values

from ..MODELS.errors import ComposeFileError
from ..MODELS.project import NetworkDefinition, Project
from ..MODELS.service_definition import (
    DEFAULT_NETWORK,
    DeployConfig,
    HealthCheck,
    RestartPolicyCondition,
    ServiceConfig,
    ServiceDependency,
    ServiceNetworkConfig,
)
from ..UTILS.string_interpolation import EnvironmentInterpolator

_DURATION = re.compile(r"(\d+(?:\.\d+)?)(h|ms|m|s|us)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001, "us": 0.000001}


def normalize_project_name(name: str) -> str:
    return re.sub(r"[^a-z0-9_-]", "", name.lower())


class ComposeParser:
    """
    Parser for docker-compose.yml files.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None, project_name: Optional[str] = None):
        """
        :param context: Variables for interpolation. When None, the .env file
            next to the compose file and the process environment are used.
        :param project_name: Overrides the name declared in, or derived from, the file.
        """
        self.context = context
        self.project_name = project_name

    def parse(self, compose_path: str) -> Project:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed project.
        """
        with open(compose_path, 'r') as f:
            content = f.read()
        base_dir = os.path.dirname(os.path.abspath(compose_path))
        return self.parse_from_string(
            content,
            default_name=os.path.basename(base_dir),
            context=self._load_context(base_dir),
        )

    def _load_context(self, base_dir: str) -> Dict[str, str]:
        if self.context is not None:
            return self.context
        context = {}
        env_file = os.path.join(base_dir, ".env")
        if os.path.exists(env_file):
            context.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        # The process environment wins over .env
        context.update(os.environ)
        return context

    def parse_from_string(self,
                          content: str,
                          default_name: str = "default",
                          context: Optional[Dict[str, str]] = None) -> Project:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :param default_name: Project name used when neither the parser nor the file sets one.
        :param context: Variables for interpolation, the parser's context when None.
        :raises ComposeFileError: If the content is not a valid compose file.
        """
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ComposeFileError(f"invalid compose file: {e}") from e
        if not isinstance(data, dict):
            raise ComposeFileError("invalid compose file: top level must be a mapping")

        interpolator = EnvironmentInterpolator(context if context is not None else (self.context or {}))
        data = interpolator.interpolate_all(data)

        name = normalize_project_name(str(self.project_name or data.get('name') or default_name))
        if not name:
            raise ComposeFileError("project name must contain at least one letter or digit")

        try:
            services = [self._parse_service(svc_name, spec or {})
                        for svc_name, spec in (data.get('services') or {}).items()]
            networks = self._parse_networks(name, data.get('networks') or {})
            if any(DEFAULT_NETWORK in s.networks_by_priority() for s in services):
                networks.setdefault(DEFAULT_NETWORK, NetworkDefinition(name=f"{name}_{DEFAULT_NETWORK}"))
            return Project(name=name, services=services, networks=networks)
        except (ValueError, TypeError, AttributeError) as e:
            raise ComposeFileError(f"invalid compose file: {e}") from e

    def _parse_networks(self, project_name: str, spec: Dict[str, Any]) -> Dict[str, NetworkDefinition]:
        networks = {}
        for key, cfg in spec.items():
            cfg = cfg or {}
            external = bool(cfg.get('external', False))
            default = key if external else f"{project_name}_{key}"
            networks[key] = NetworkDefinition(name=cfg.get('name') or default, external=external)
        return networks

    def _parse_service(self, name: str, spec: Dict[str, Any]) -> ServiceConfig:
        """
        Parses a single service definition from a compose file.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :return: A ServiceConfig instance.
        """
        deploy = None
        if isinstance(spec.get('deploy'), dict):
            deploy = DeployConfig(replicas=spec['deploy'].get('replicas'))

        # YAML reads a bare `no` as false
        restart = spec.get('restart', 'no')
        if restart is False:
            restart = 'no'

        return ServiceConfig(
            name=name,
            image=spec.get('image', ''),
            command=self._to_command(spec.get('command')),
            entrypoint=self._to_command(spec.get('entrypoint')),
            environment=self._to_mapping(spec.get('environment')),
            labels=self._to_mapping(spec.get('labels')),
            platform=spec.get('platform'),
            scale=int(spec.get('scale', 0)),
            deploy=deploy,
            container_name=spec.get('container_name'),
            networks=self._parse_service_networks(spec.get('networks')),
            links=self._to_list(spec.get('links')),
            external_links=self._to_list(spec.get('external_links')),
            depends_on=self._parse_depends_on(spec.get('depends_on')),
            health_check=self._parse_healthcheck(spec.get('healthcheck')),
            restart_policy=RestartPolicyCondition(restart),
            extensions={k: v for k, v in spec.items() if k.startswith('x-')},
        )

    def _parse_depends_on(self, spec: Any) -> Dict[str, ServiceDependency]:
        if not spec:
            return {}
        if isinstance(spec, list):
            return {dep: ServiceDependency() for dep in spec}
        return {dep: ServiceDependency(**(cfg or {})) for dep, cfg in spec.items()}

    def _parse_service_networks(self, spec: Any) -> Dict[str, Optional[ServiceNetworkConfig]]:
        if not spec:
            return {}
        if isinstance(spec, list):
            return {key: None for key in spec}
        return {key: ServiceNetworkConfig(**cfg) if cfg else None for key, cfg in spec.items()}

    def _parse_healthcheck(self, spec: Any) -> Optional[HealthCheck]:
        if not spec or spec.get('disable'):
            return None
        test = spec.get('test', [])
        if isinstance(test, str):
            test = ['CMD-SHELL', test]
        return HealthCheck(
            test=list(test),
            interval=self._to_seconds(spec.get('interval'), 30.0),
            timeout=self._to_seconds(spec.get('timeout'), 30.0),
            retries=int(spec.get('retries', 3)),
            start_period=self._to_seconds(spec.get('start_period'), 0.0),
        )

    def _to_seconds(self, val: Any, default: float) -> float:
        """
        Converts a compose duration such as "1m30s" to seconds.
        """
        if val is None:
            return default
        if isinstance(val, (int, float)):
            return float(val)
        parts = _DURATION.findall(val)
        if not parts or "".join(n + u for n, u in parts) != val.replace(" ", ""):
            raise ComposeFileError(f"invalid duration {val!r}")
        return sum(float(n) * _DURATION_UNITS[u] for n, u in parts)

    def _to_mapping(self, val: Any) -> Dict[str, str]:
        """
        Accepts both the KEY=VALUE list form and the mapping form.
        """
        if not val:
            return {}
        if isinstance(val, list):
            result = {}
            for item in val:
                key, _, value = item.partition('=')
                result[key] = value
            return result
        return {k: '' if v is None else str(v) for k, v in val.items()}

    def _to_command(self, val: Any) -> List[str]:
        if isinstance(val, str):
            return shlex.split(val)
        return self._to_list(val)

    def _to_list(self, val: Any) -> List[str]:
        """
        Helper to ensure a value is a list of strings.

        :param val: The value to convert.
        :return: A list of strings.
        """
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return [str(v) for v in val]

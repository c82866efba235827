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

Only the subset of the compose format needed to run containers is
understood; everything else is ignored.
"""
import os
import shlex
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import dotenv_values

from ..MODELS.service_definition import BuildSpec, Container, PullMode, Service
from ..UTILS.string_interpolation import EnvironmentInterpolator
from ..errors import ConfigurationError

# compose pull_policy values that have a different name here
_PULL_POLICY_ALIASES = {
    "if_not_present": PullMode.MISSING,
    "missing": PullMode.MISSING,
}


class ComposeParser:
    """
    Parser for docker-compose.yml files producing the services to bring up.
    """
    def __init__(self,
                 project_name: str,
                 project_dir: str = ".",
                 context: Optional[Mapping[str, str]] = None,
                 env_file: Optional[str] = None):
        """
        Initializes the parser.

        :param project_name: Name of the project, used for default image and container names.
        :param project_dir: Directory relative paths are resolved against.
        :param context: Variables for interpolation. Defaults to the ``.env`` file of
            the project directory overlaid with the process environment.
        :param env_file: Read variables from this file instead of ``.env``.
        """
        self.project_name = project_name
        self.project_dir = os.path.abspath(project_dir)
        if context is None:
            context = self.load_context(self.project_dir, env_file)
        self.context = dict(context)

    @staticmethod
    def load_context(project_dir: str, env_file: Optional[str] = None) -> Dict[str, str]:
        """
        Loads the interpolation variables of a project.

        :param project_dir: Directory that may contain a ``.env`` file.
        :param env_file: Explicit env file replacing ``.env``.
        :return: Variables from the env file, overridden by the process environment.
        """
        context: Dict[str, str] = {}
        dotenv_path = env_file or os.path.join(project_dir, ".env")
        if os.path.exists(dotenv_path):
            context.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
        context.update(os.environ)
        return context

    def parse(self, compose_path: str) -> List[Service]:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Services in file order.
        """
        with open(compose_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> List[Service]:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :return: Services in file order.
        :raises ConfigurationError: If the content is not a valid compose file.
        """
        try:
            content = EnvironmentInterpolator.interpolate(content, self.context)
        except KeyError as e:
            raise ConfigurationError(f"invalid interpolation: {e}") from e

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"invalid compose file: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError("invalid compose file: top level must be a mapping")

        services = data.get('services') or {}
        if not isinstance(services, dict):
            raise ConfigurationError("invalid compose file: services must be a mapping")

        return [self._parse_service(name, spec or {}) for name, spec in services.items()]

    def _parse_service(self, name: str, spec: Dict[str, Any]) -> Service:
        """
        Parses a single service definition from a compose file.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :return: A Service instance.
        """
        if not isinstance(spec, dict):
            raise ConfigurationError(f"service {name}: definition must be a mapping")

        build = self._parse_build(spec.get('build'))
        image = spec.get('image') or f"{self.project_name}-{name}"
        if build is None and not spec.get('image'):
            raise ConfigurationError(f"service {name}: neither image nor build is specified")

        pull_mode = self._parse_pull_policy(name, spec.get('pull_policy'))
        stdin_open = bool(spec.get('stdin_open', False))
        tty = bool(spec.get('tty', False))

        replicas = self._replicas(spec)
        if spec.get('container_name') and replicas > 1:
            raise ConfigurationError(
                f"service {name}: container_name cannot be used with more than one replica"
            )

        containers = []
        for i in range(1, replicas + 1):
            container_name = spec.get('container_name') or f"{self.project_name}-{name}-{i}"
            run_args, mkdir = self._run_args(name, container_name, image, spec)
            containers.append(Container(name=container_name, run_args=run_args, mkdir=mkdir))

        return Service(
            name=name,
            image=image,
            build=build,
            pull_mode=pull_mode,
            platform=spec.get('platform'),
            stdin_open=stdin_open,
            tty=tty,
            containers=containers,
        )

    def _parse_build(self, build: Any) -> Optional[BuildSpec]:
        if build is None:
            return None
        if isinstance(build, str):
            return BuildSpec(context=self._resolve(build))

        args = build.get('args') or {}
        if isinstance(args, list):
            args = dict(a.split('=', 1) if '=' in a else (a, self.context.get(a, '')) for a in args)
        return BuildSpec(
            context=self._resolve(build.get('context', '.')),
            dockerfile=build.get('dockerfile'),
            args={str(k): str(v) for k, v in args.items()},
            target=build.get('target'),
        )

    @staticmethod
    def _parse_pull_policy(name: str, policy: Optional[str]) -> PullMode:
        if policy is None:
            return PullMode.MISSING
        if policy in _PULL_POLICY_ALIASES:
            return _PULL_POLICY_ALIASES[policy]
        try:
            return PullMode(policy)
        except ValueError as e:
            raise ConfigurationError(f"service {name}: unsupported pull_policy {policy!r}") from e

    @staticmethod
    def _replicas(spec: Dict[str, Any]) -> int:
        deploy = spec.get('deploy') or {}
        replicas = deploy.get('replicas', spec.get('scale', 1))
        return max(int(replicas), 0)

    def _run_args(self, service_name: str, container_name: str, image: str,
                  spec: Dict[str, Any]):
        """
        Translates a service definition into arguments for the engine's run command.

        :return: The run arguments and the host directories to create beforehand.
        """
        args = [f"--name={container_name}", "--pull=never"]
        mkdir = []

        if spec.get('platform'):
            args.append(f"--platform={spec['platform']}")
        if spec.get('stdin_open'):
            args.append("-i")
        if spec.get('tty'):
            args.append("-t")
        if spec.get('restart'):
            args.append(f"--restart={spec['restart']}")
        if spec.get('hostname'):
            args.append(f"--hostname={spec['hostname']}")
        if spec.get('working_dir'):
            args.append(f"--workdir={spec['working_dir']}")
        if spec.get('user'):
            args.append(f"--user={spec['user']}")

        for env_file in self._to_list(spec.get('env_file')):
            args.append(f"--env-file={self._resolve(env_file)}")

        environment = spec.get('environment') or {}
        if isinstance(environment, dict):
            environment = [k if v is None else f"{k}={v}" for k, v in environment.items()]
        for entry in environment:
            args += ["-e", str(entry)]

        for port in spec.get('ports') or []:
            if isinstance(port, dict):
                published = port.get('published')
                port = f"{published}:{port['target']}" if published else str(port['target'])
            args += ["-p", str(port)]

        for volume in spec.get('volumes') or []:
            flag, host_dir = self._volume(volume)
            args += ["-v", flag]
            if host_dir:
                mkdir.append(host_dir)

        svc_labels = spec.get('labels') or {}
        if isinstance(svc_labels, list):
            svc_labels = dict(l.split('=', 1) if '=' in l else (l, '') for l in svc_labels)
        for key, value in svc_labels.items():
            args.append(f"-l={key}={value}")

        entrypoint = spec.get('entrypoint')
        if entrypoint:
            entrypoint = self._command_list(entrypoint)
            args.append(f"--entrypoint={entrypoint[0]}")
            extra = entrypoint[1:]
        else:
            extra = []

        args.append(image)
        args += extra
        args += self._command_list(spec.get('command'))
        return args, mkdir

    def _volume(self, volume: Any):
        """
        Returns the -v flag for a volume and, for bind mounts, the host directory.
        """
        if isinstance(volume, dict):
            source = volume.get('source')
            target = volume['target']
            mode = 'ro' if volume.get('read_only') else None
            is_bind = volume.get('type', 'bind' if source else 'volume') == 'bind'
        else:
            parts = str(volume).split(':')
            if len(parts) == 1:
                return parts[0], None
            source, target = parts[0], parts[1]
            mode = parts[2] if len(parts) > 2 else None
            is_bind = source.startswith(('.', '/', '~'))

        if is_bind and source:
            source = self._resolve(os.path.expanduser(source))
        flag = f"{source}:{target}" if source else target
        if mode:
            flag += f":{mode}"
        return flag, source if is_bind and source else None

    def _resolve(self, path: str) -> str:
        return os.path.normpath(os.path.join(self.project_dir, path))

    @staticmethod
    def _command_list(val: Any) -> List[str]:
        if val is None:
            return []
        if isinstance(val, str):
            return shlex.split(val)
        return [str(v) for v in val]

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
        return list(val)

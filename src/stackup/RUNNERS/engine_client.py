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
Thin client for an external container engine CLI (nerdctl or docker compatible).

Every method maps to a single engine invocation.
"""
import logging
import subprocess
from typing import List, Optional

from ..MODELS.service_definition import BuildSpec, PullMode
from ..UTILS import labels
from ..errors import EngineError

logger = logging.getLogger(__name__)

# Substrings of `image inspect` errors that mean the image is absent
MISSING_IMAGE_MARKERS = ("no such image", "no such object", "not found")


class EngineClient:
    """
    Builds and runs engine command lines for the containers of one project.
    """
    def __init__(self, project_name: str, engine: str = "nerdctl"):
        """
        :param project_name: Project whose containers are looked up via labels.
        :param engine: Engine binary name or path.
        """
        self.project_name = project_name
        self.engine = engine

    def command(self, *args: str) -> List[str]:
        """
        Returns the argument vector for an engine subcommand.
        """
        return [self.engine, *args]

    def _run(self, args: List[str], what: str, capture: bool = False,
             check: bool = True) -> subprocess.CompletedProcess:
        cmd = self.command(*args)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.PIPE if capture else None,
                text=True,
                shell=False,
            )
        except OSError as e:
            raise EngineError(f"{what}: {e}") from e

        if check and result.returncode != 0:
            detail = (result.stderr or "").strip() if capture else ""
            message = f"{what}: {self.engine} {args[0]} exited with status {result.returncode}"
            if detail:
                message += f": {detail}"
            raise EngineError(message, returncode=result.returncode)
        return result

    # Images

    def image_exists(self, ref: str) -> bool:
        """
        Checks whether the image is present in the local store.

        :param ref: Image reference.
        :return: True if the engine knows the image, False if it reports it missing.
        :raises EngineError: If the inspection fails for any other reason.
        """
        result = self._run(["image", "inspect", ref], f"failed to inspect image {ref}",
                           capture=True, check=False)
        if result.returncode == 0:
            return True
        detail = (result.stderr or "").strip()
        if any(marker in detail.lower() for marker in MISSING_IMAGE_MARKERS):
            return False
        message = f"failed to inspect image {ref}: {self.engine} image exited with status {result.returncode}"
        if detail:
            message += f": {detail}"
        raise EngineError(message, returncode=result.returncode)

    def build_image(self, ref: str, build: BuildSpec, platform: Optional[str] = None):
        """
        Builds the image, streaming the build output to the terminal.
        """
        args = ["build", "-t", ref]
        if platform:
            args.append(f"--platform={platform}")
        if build.dockerfile:
            args += ["-f", build.dockerfile]
        for key, value in build.args.items():
            args.append(f"--build-arg={key}={value}")
        if build.target:
            args.append(f"--target={build.target}")
        args.append(build.context)

        logger.info("Building image %s", ref)
        self._run(args, f"failed to build image {ref}")

    def pull_image(self, ref: str, platform: Optional[str] = None, quiet: bool = False):
        args = ["pull"]
        if quiet:
            args.append("--quiet")
        if platform:
            args.append(f"--platform={platform}")
        args.append(ref)
        self._run(args, f"failed to pull image {ref}")

    def ensure_image(self, ref: str, pull_mode: PullMode, platform: Optional[str] = None,
                     quiet: bool = False):
        """
        Makes sure the image is available according to the pull mode.

        ``always`` pulls unconditionally, ``missing`` and ``build`` pull only
        when the image is absent and ``never`` fails when it is absent.

        :raises EngineError: If the image is absent under ``never`` or the pull fails.
        """
        pull_mode = PullMode(pull_mode)
        if pull_mode == PullMode.ALWAYS:
            self.pull_image(ref, platform, quiet)
            return

        if self.image_exists(ref):
            return

        if pull_mode == PullMode.NEVER:
            raise EngineError(f"image {ref} not found and pull mode is {pull_mode.value}")
        self.pull_image(ref, platform, quiet)

    # Containers

    def _label_filters(self, service_name: str) -> List[str]:
        return [
            "--filter", labels.label_filter(labels.PROJECT, self.project_name),
            "--filter", labels.label_filter(labels.SERVICE, service_name),
        ]

    def container_id(self, name: str, service_name: str) -> str:
        """
        Looks up the container with this name belonging to the service.

        :return: The container ID, or an empty string if there is none.
        """
        args = ["ps", "-a", "-q", "--no-trunc", *self._label_filters(service_name),
                "--filter", f"name=^{name}$"]
        result = self._run(args, f"failed to look up container {name}", capture=True)
        ids = result.stdout.split()
        return ids[0] if ids else ""

    def service_container_ids(self, service_name: str) -> List[str]:
        """
        Lists the IDs of every container of the service, running or not.
        """
        args = ["ps", "-a", "-q", "--no-trunc", *self._label_filters(service_name)]
        result = self._run(args, f"failed to list containers of service {service_name}", capture=True)
        return result.stdout.split()

    def inspect(self, container_id: str, fmt: str) -> str:
        result = self._run(["inspect", "--format", fmt, container_id],
                           f"failed to inspect container {container_id}", capture=True)
        return result.stdout.strip()

    def container_name(self, container_id: str) -> str:
        return self.inspect(container_id, "{{.Name}}").lstrip("/")

    def container_started_at(self, container_id: str) -> str:
        return self.inspect(container_id, "{{.State.StartedAt}}")

    def start_command(self, container_id: str) -> List[str]:
        return self.command("start", container_id)

    def run_command(self, run_args: List[str]) -> List[str]:
        return self.command("run", *run_args)

    def logs_command(self, container_id: str, follow: bool = False,
                     since: Optional[str] = None) -> List[str]:
        args = ["logs"]
        if follow:
            args.append("--follow")
        if since:
            args.append(f"--since={since}")
        args.append(container_id)
        return self.command(*args)

    def remove_container(self, name: str):
        """
        Forcibly removes a container, running or not.
        """
        self._run(["rm", "-f", name], f"could not delete container {name!r}")

    def kill_container(self, container_id: str):
        self._run(["kill", container_id], f"failed to kill container {container_id}", capture=True)

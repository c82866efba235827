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
Launching of a single service container: reuse, recreate or create.
"""
import logging
import os
import tempfile
from typing import List, Optional

from ..MODELS.project_config import ProjectConfig
from ..MODELS.service_definition import Container, Service
from ..MODELS.up_options import RecreatePolicy
from ..RUNNERS.command_executor import CommandExecutor
from ..RUNNERS.engine_client import EngineClient
from ..UTILS import labels
from ..errors import ConfigurationError, EngineError, FilesystemError

logger = logging.getLogger(__name__)

CIDFILE_NAME = "cid"


class ContainerLauncher:
    """
    Brings one container of a service up and reports its container ID.

    Must only be used once the image of the service has been provisioned.
    """
    def __init__(self,
                 engine: EngineClient,
                 project: ProjectConfig,
                 executor: Optional[CommandExecutor] = None):
        """
        :param engine: Client for the external engine.
        :param project: Project the container belongs to.
        :param executor: Runs the start and run commands, defaults to a new one.
        """
        self.engine = engine
        self.project = project
        self.executor = executor or CommandExecutor(project.debug_print_full)

    def launch(self, service: Service, container: Container, recreate: RecreatePolicy) -> str:
        """
        Starts the container, reusing or recreating an existing one as the policy says.

        :param service: The service owning the container.
        :param container: The container to launch.
        :param recreate: Policy applied when the container already exists.
        :return: The container ID.
        :raises ConfigurationError: If stdin_open and tty differ.
        :raises EngineError: If an engine command fails.
        :raises FilesystemError: If a directory or the cidfile cannot be handled.
        """
        # 1. Existing container
        try:
            existing_cid = self.engine.container_id(container.name, service.name)
        except EngineError as e:
            raise EngineError(
                f"error while checking for containers with name {container.name!r}: {e}",
                container=container.name,
                returncode=e.returncode,
            ) from e

        # 2. Terminal mode
        # FIXME: -i without -t (and the reverse) is not supported yet
        if service.stdin_open != service.tty:
            raise ConfigurationError(
                f"container {container.name}: currently stdin_open (-i) and tty (-t) should be same"
            )

        # 3. Detach flag
        run_args = list(container.run_args)
        detach = not service.stdin_open and not service.tty
        if detach:
            run_args = ["-d"] + run_args

        # 4. Reuse
        if existing_cid and recreate == RecreatePolicy.NEVER:
            try:
                self.executor.execute(self.engine.start_command(existing_cid),
                                      container.name, detach, service.stdin_open)
            except EngineError as e:
                raise EngineError(
                    f"error while starting existing container {container.name}: {e}",
                    container=container.name,
                    returncode=e.returncode,
                ) from e
            return existing_cid

        # 5. Recreate
        if existing_cid:
            logger.debug("Container %r already exists, deleting", container.name)
            try:
                self.engine.remove_container(container.name)
            except EngineError as e:
                raise EngineError(str(e), container=container.name, returncode=e.returncode) from e
            logger.info("Re-creating container %s", container.name)
        else:
            logger.info("Creating container %s", container.name)

        # 6-7. Create
        return self._create(service, container, run_args, detach)

    def _create(self, service: Service, container: Container, run_args: List[str], detach: bool) -> str:
        for path in container.mkdir:
            logger.debug("Creating a directory %r", path)
            try:
                os.makedirs(path, 0o755, exist_ok=True)
            except OSError as e:
                raise FilesystemError(
                    f"container {container.name}: failed to create a directory {path!r}: {e}"
                ) from e

        try:
            scratch = tempfile.TemporaryDirectory(prefix="compose-")
        except OSError as e:
            raise FilesystemError(
                f"error while creating/re-creating container {container.name}: {e}"
            ) from e

        with scratch as temp_dir:
            cidfile = os.path.join(temp_dir, CIDFILE_NAME)
            run_args = self.inject_run_args(service, cidfile, run_args)

            try:
                self.executor.execute(self.engine.run_command(run_args),
                                      container.name, detach, service.stdin_open)
            except EngineError as e:
                raise EngineError(
                    f"error while creating container {container.name}: {e}",
                    container=container.name,
                    returncode=e.returncode,
                ) from e

            try:
                with open(cidfile, "r") as f:
                    cid = f.read().strip()
            except OSError as e:
                raise FilesystemError(
                    f"error while creating container {container.name}: {e}"
                ) from e

        if not cid:
            raise FilesystemError(
                f"error while creating container {container.name}: empty container ID in cidfile"
            )
        return cid

    def inject_run_args(self, service: Service, cidfile: str, run_args: List[str]) -> List[str]:
        """
        Prepends the cidfile, env file and metadata label flags to the run arguments.

        :return: A new argument list; the given one is left untouched.
        """
        injected = [f"--cidfile={cidfile}"]
        if self.project.env_file:
            injected.append(f"--env-file={self.project.env_file}")
        injected += [
            labels.label_flag(labels.PROJECT, self.project.name),
            labels.label_flag(labels.SERVICE, service.name),
        ]
        return injected + run_args

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
Orchestration of a compose-style up across multiple services.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

from ..BUILDERS.image_provisioner import ImageProvisioner
from ..MODELS.project_config import ProjectConfig
from ..MODELS.service_definition import Container, Service
from ..MODELS.up_options import LogsOptions, RecreatePolicy, UpOptions
from ..RUNNERS.engine_client import EngineClient
from ..errors import InputError
from .container_launcher import ContainerLauncher
from .container_registry import ContainerRegistry
from .log_aggregator import LogAggregator
from .stop_coordinator import StopCoordinator

logger = logging.getLogger(__name__)


class ServiceOrchestrator:
    """
    Brings up the services of a project: provisions images, launches
    containers, attaches to logs and stops the containers afterwards.
    """
    def __init__(self,
                 project: ProjectConfig,
                 engine: Optional[EngineClient] = None,
                 provisioner: Optional[ImageProvisioner] = None,
                 launcher: Optional[ContainerLauncher] = None,
                 log_aggregator: Optional[LogAggregator] = None,
                 stopper: Optional[StopCoordinator] = None):
        """
        Initializes the orchestrator. Collaborators default to ones built on
        a shared engine client.

        :param project: Configuration of the project.
        :param engine: Client for the external engine.
        """
        self.project = project
        self.engine = engine or EngineClient(project.name, project.engine)
        self.provisioner = provisioner or ImageProvisioner(self.engine)
        self.launcher = launcher or ContainerLauncher(self.engine, project)
        self.log_aggregator = log_aggregator or LogAggregator(self.engine)
        self.stopper = stopper or StopCoordinator(self.engine)

    def up(self, services: List[Service], options: Optional[UpOptions] = None) -> ContainerRegistry:
        """
        Starts all services and, unless detached, follows their logs until
        the streams end, then stops the containers.

        Images are provisioned one service at a time so interactive build and
        pull output does not interleave. Containers of a service are launched
        concurrently; services are launched one after another.

        :param services: Services to bring up, in order.
        :param options: Flags of this up.
        :return: The registry of launched containers.
        :raises InputError: If no service was provided or a selected one is unknown.
        :raises StackupError: On the first failure of any step.
        """
        options = options or UpOptions()
        if options.services:
            known = {s.name for s in services}
            unknown = [name for name in options.services if name not in known]
            if unknown:
                raise InputError(f"no such service: {', '.join(unknown)}")
            services = [s for s in services if s.name in options.services]
        if not services:
            raise InputError("no service was provided")

        # TODO: provision images in parallel once build output is multiplexed
        for service in services:
            self.provisioner.ensure(service, not options.no_build, options.force_build,
                                    options.quiet_pull, options.pull)

        recreate = options.recreate_policy()
        registry = ContainerRegistry()
        for service in services:
            self._launch_service(service, recreate, registry)

        if options.detach:
            return registry

        service_names = [s.name for s in services]
        try:
            logger.info("Attaching to logs")
            logs_options = LogsOptions(
                follow=True,
                abort_on_container_exit=options.abort_on_container_exit,
                no_color=options.no_color,
                no_log_prefix=options.no_log_prefix,
                latest_run=recreate == RecreatePolicy.NEVER,
            )
            self.log_aggregator.attach(service_names, logs_options)
        finally:
            # The log stream may end without Ctrl-C reaching us, so containers
            # are stopped here as well when --abort-on-container-exit is set.
            if options.abort_on_container_exit:
                self.stopper.stop(registry)

        # TODO: support stopping gracefully
        logger.info("Stopping containers (forcibly)")
        self.stopper.stop(registry)
        return registry

    def _launch_service(self, service: Service, recreate: RecreatePolicy, registry: ContainerRegistry):
        """
        Launches every container of the service concurrently.

        Siblings of a failing container are not cancelled; the first error
        is raised once all of them have finished.
        """
        if not service.containers:
            return

        first_error: Optional[BaseException] = None
        with ThreadPoolExecutor(max_workers=len(service.containers),
                                thread_name_prefix=f"up-{service.name}") as pool:
            futures = [
                pool.submit(self._launch_container, service, container, recreate, registry)
                for container in service.containers
            ]
            for future in as_completed(futures):
                error = future.exception()
                if error is not None and first_error is None:
                    first_error = error

        if first_error is not None:
            raise first_error

    def _launch_container(self, service: Service, container: Container,
                          recreate: RecreatePolicy, registry: ContainerRegistry):
        container_id = self.launcher.launch(service, container, recreate)
        registry.add(container_id, container)

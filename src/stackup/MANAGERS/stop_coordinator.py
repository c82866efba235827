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
Forced stop of the containers registered during an up.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

from ..RUNNERS.engine_client import EngineClient
from ..errors import EngineError
from .container_registry import ContainerRegistry

logger = logging.getLogger(__name__)


class StopCoordinator:
    """
    Kills every registered container, best effort.

    Safe to call more than once: killing a container that already stopped
    fails in the engine, which is only logged.
    """
    def __init__(self, engine: EngineClient, max_workers: int = 8):
        self.engine = engine
        self.max_workers = max_workers

    def stop(self, registry: ContainerRegistry):
        """
        Force-stops all containers in the registry concurrently.

        Failures are logged and never raised.
        """
        containers = registry.snapshot()
        if not containers:
            return

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(containers))) as pool:
            for container_id, container in containers.items():
                pool.submit(self._stop_one, container_id, container.name)

    def _stop_one(self, container_id: str, name: str):
        logger.info("Stopping container %s", name)
        try:
            self.engine.kill_container(container_id)
        except EngineError as e:
            logger.warning("Could not stop container %s: %s", name, e)

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
Registry of the containers launched by an up, keyed by container ID.
"""
import threading
from typing import Dict, List

from ..MODELS.service_definition import Container
from ..errors import RegistryError


class ContainerRegistry:
    """
    Thread-safe mapping of container ID to container definition.

    Launch tasks of a service batch write to it concurrently; each ID is
    written at most once.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._containers: Dict[str, Container] = {}

    def add(self, container_id: str, container: Container):
        """
        Records a launched container.

        :raises RegistryError: If the ID is already registered.
        """
        with self._lock:
            if container_id in self._containers:
                raise RegistryError(
                    f"container ID {container_id} registered twice "
                    f"({self._containers[container_id].name}, {container.name})"
                )
            self._containers[container_id] = container

    def snapshot(self) -> Dict[str, Container]:
        """Returns a copy of the current contents."""
        with self._lock:
            return dict(self._containers)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._containers)

    def __contains__(self, container_id: str) -> bool:
        with self._lock:
            return container_id in self._containers

    def __len__(self) -> int:
        with self._lock:
            return len(self._containers)

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
Makes the image of a service available before its containers are launched.
"""
import logging
from typing import Optional

from ..MODELS.service_definition import Service
from ..RUNNERS.engine_client import EngineClient

logger = logging.getLogger(__name__)


class ImageProvisioner:
    """
    Builds or pulls service images through the engine.
    """
    def __init__(self, engine: EngineClient):
        self.engine = engine

    def ensure(self, service: Service, allow_build: bool, force_build: bool,
               quiet: bool = False, pull_mode_override: Optional[str] = None):
        """
        Ensures the image of the service exists.

        A service with build instructions is built when building is allowed and
        either a rebuild is forced or the image is missing. Otherwise the image
        is handed to the engine with the effective pull mode, which may still
        pull an image that already exists (``always``).

        :param service: The service whose image is needed.
        :param allow_build: False when implicit builds are disabled (--no-build).
        :param force_build: Rebuild even when the image exists (--build).
        :param quiet: Suppress pull progress output.
        :param pull_mode_override: Pull mode replacing the service's own policy.
        :raises EngineError: If the existence check, build or pull fails.
        """
        if service.build is not None and allow_build:
            if service.build.force or force_build:
                self.engine.build_image(service.image, service.build, service.platform)
                return
            if not self.engine.image_exists(service.image):
                self.engine.build_image(service.image, service.build, service.platform)
                return
            logger.debug("Image %s already exists, not building", service.image)

        logger.info("Ensuring image %s", service.image)
        pull_mode = pull_mode_override or service.pull_mode
        self.engine.ensure_image(service.image, pull_mode, service.platform, quiet)

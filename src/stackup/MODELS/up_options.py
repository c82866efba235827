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
Options accepted by the up operation and handed on to log attachment.
"""
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, field_validator, model_validator

from .service_definition import PullMode


class RecreatePolicy(str, Enum):
    """
    Whether an existing container is reused or deleted and created again.
    """
    NEVER = "never"
    DIVERGED = "diverged"
    FORCE = "force"


class UpOptions(BaseModel):
    """
    Flags of a single up invocation.
    """
    no_build: bool = False
    force_build: bool = False
    detach: bool = False
    abort_on_container_exit: bool = False
    quiet_pull: bool = False
    # Overrides the pull mode of every service when set
    pull: Optional[str] = None
    no_color: bool = False
    no_log_prefix: bool = False
    force_recreate: bool = False
    no_recreate: bool = False
    # Restricts the up to these services; empty means all of them
    services: List[str] = []

    @field_validator("pull")
    @classmethod
    def _check_pull(cls, value: Optional[str]) -> Optional[str]:
        if value:
            allowed = [m.value for m in PullMode]
            if value not in allowed:
                raise ValueError(f"pull mode must be one of {', '.join(allowed)}, got {value!r}")
        return value or None

    @model_validator(mode="after")
    def _check_conflicts(self) -> "UpOptions":
        if self.no_build and self.force_build:
            raise ValueError("--build and --no-build are incompatible")
        if self.force_recreate and self.no_recreate:
            raise ValueError("--force-recreate and --no-recreate are incompatible")
        if self.detach and self.abort_on_container_exit:
            raise ValueError("--abort-on-container-exit and --detach are incompatible")
        return self

    def recreate_policy(self) -> RecreatePolicy:
        """
        Derives the recreate policy applied to every container of this up.

        :return: ``FORCE`` for --force-recreate, ``NEVER`` for --no-recreate,
            ``DIVERGED`` otherwise.
        """
        if self.force_recreate:
            return RecreatePolicy.FORCE
        if self.no_recreate:
            return RecreatePolicy.NEVER
        return RecreatePolicy.DIVERGED


class LogsOptions(BaseModel):
    """
    How the log aggregator attaches to the containers of a project.
    """
    follow: bool = False
    abort_on_container_exit: bool = False
    no_color: bool = False
    no_log_prefix: bool = False
    # Only show output from the most recent run of each container
    latest_run: bool = False

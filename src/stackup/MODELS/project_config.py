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
Project-wide settings shared by every service of an up.
"""
import os
from typing import Mapping, Optional
from pydantic import BaseModel

DEFAULT_ENGINE = "nerdctl"

_TRUE_VALUES = ("1", "true", "yes", "on")


class ProjectConfig(BaseModel):
    """
    Settings of the project being brought up.
    """
    name: str
    # Passed as --env-file to every created container
    env_file: Optional[str] = None
    engine: str = DEFAULT_ENGINE
    # Log the complete engine command line at debug level
    debug_print_full: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, default_name: Optional[str] = None,
                 **overrides) -> "ProjectConfig":
        """
        Builds the configuration from ``STACKUP_*`` environment variables.

        Keyword arguments that are not ``None`` take precedence over the environment.

        :param environ: Environment to read, defaults to ``os.environ``.
        :param default_name: Project name used when none is configured, defaults to
            the name of the current directory.
        :return: The resulting configuration.
        """
        environ = os.environ if environ is None else environ
        values = {
            "name": environ.get("STACKUP_PROJECT_NAME") or default_name or os.path.basename(os.getcwd()),
            "env_file": environ.get("STACKUP_ENV_FILE") or None,
            "engine": environ.get("STACKUP_ENGINE") or DEFAULT_ENGINE,
            "debug_print_full": environ.get("STACKUP_DEBUG_PRINT_FULL", "").lower() in _TRUE_VALUES,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

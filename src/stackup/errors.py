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
Exception types raised while bringing a project up.
"""
from typing import Optional


class StackupError(Exception):
    """Base class for every error raised by stackup."""


class InputError(StackupError):
    """The caller supplied nothing to work on."""


class ConfigurationError(StackupError):
    """An unsupported service or option combination was requested."""


class FilesystemError(StackupError):
    """A local directory or file needed for a launch could not be handled."""


class RegistryError(StackupError):
    """A container identifier was registered twice."""


class EngineError(StackupError):
    """
    An external engine command failed to launch or exited non-zero.

    :param message: Human readable description.
    :param container: Name of the container the command acted on, if any.
    :param returncode: Exit status of the engine process, if it ran.
    """
    def __init__(self, message: str, container: Optional[str] = None, returncode: Optional[int] = None):
        super().__init__(message)
        self.container = container
        self.returncode = returncode

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
Metadata labels that tag containers with their owning project and service.
"""

PREFIX = "com.docker.compose"
PROJECT = PREFIX + ".project"
SERVICE = PREFIX + ".service"


def label_flag(key: str, value: str) -> str:
    """Renders a ``-l=KEY=VALUE`` flag for the engine's run command."""
    return f"-l={key}={value}"


def label_filter(key: str, value: str) -> str:
    """Renders the argument of a ``--filter`` matching ``KEY=VALUE``."""
    return f"label={key}={value}"

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
Models for defining services, their build instructions and their containers.
"""
from typing import List, Dict, Optional
from enum import Enum
from pydantic import BaseModel, Field


class PullMode(str, Enum):
    """
    When the image of a service is pulled from its registry.
    """
    ALWAYS = "always"
    MISSING = "missing"
    NEVER = "never"
    BUILD = "build"


class BuildSpec(BaseModel):
    """
    Instructions for building the image of a service.
    """
    context: str = "."
    dockerfile: Optional[str] = None
    args: Dict[str, str] = {}
    target: Optional[str] = None
    # Rebuild even when the image already exists
    force: bool = False


class Container(BaseModel):
    """
    One runnable unit of a service.

    ``run_args`` are the arguments handed to the engine's ``run`` command, after
    the image reference has been placed among them by the parser. The launcher
    prepends its own flags to a copy of this list.
    """
    name: str
    run_args: List[str] = []
    mkdir: List[str] = []


class Service(BaseModel):
    """
    The full definition of a single service, as produced by a compose parser.
    """
    name: str
    image: str
    build: Optional[BuildSpec] = None
    pull_mode: PullMode = PullMode.MISSING
    platform: Optional[str] = None

    # Terminal mode (-i / -t)
    stdin_open: bool = False
    tty: bool = False

    containers: List[Container] = Field(default_factory=list)

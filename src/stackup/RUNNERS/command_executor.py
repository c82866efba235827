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
Execution of a single external engine command with its standard streams
wired to the invoking process.
"""
import logging
import subprocess
import sys
from typing import List

from ..errors import EngineError

logger = logging.getLogger(__name__)


class CommandExecutor:
    """
    Runs engine commands that act on one container and only matter for their
    side effects. Nothing is captured.
    """
    def __init__(self, debug_print_full: bool = False):
        """
        :param debug_print_full: Also log the complete command line at debug level.
        """
        self.debug_print_full = debug_print_full

    def execute(self, command: List[str], container_name: str, detach: bool, stdin_open: bool):
        """
        Runs the command to completion.

        Standard input is connected only when ``stdin_open`` is set and
        standard output only when not detached. Standard error is always
        connected so engine diagnostics reach the user.

        :param command: Complete argument vector, engine binary first.
        :param container_name: Container the command acts on, for error context.
        :param detach: Whether the container runs detached.
        :param stdin_open: Whether the container keeps stdin open.
        :raises EngineError: If the command cannot be launched or exits non-zero.
        """
        logger.info("Running %s", " ".join(command))
        if self.debug_print_full:
            logger.debug("Running %r", command)

        stdin = sys.stdin if stdin_open else subprocess.DEVNULL
        stdout = None if not detach else subprocess.DEVNULL

        try:
            # stderr=None inherits the parent's stream
            result = subprocess.run(command, stdin=stdin, stdout=stdout, stderr=None, shell=False)
        except OSError as e:
            raise EngineError(
                f"container {container_name}: failed to run {command[0]}: {e}",
                container=container_name,
            ) from e

        if result.returncode != 0:
            raise EngineError(
                f"container {container_name}: {' '.join(command[:2])} "
                f"exited with status {result.returncode}",
                container=container_name,
                returncode=result.returncode,
            )

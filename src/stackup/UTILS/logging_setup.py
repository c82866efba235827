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
Logging configuration for the command line.
"""
import logging
import sys


def setup_logging(log_level: str = "INFO", stream=None) -> logging.Logger:
    """
    Set up the ``stackup`` logger.

    Messages go to stderr so they never mix with container output on stdout.

    :param log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    :param stream: Console stream, defaults to ``sys.stderr``.
    :return: The configured logger.
    """
    logger = logging.getLogger("stackup")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers
    logger.propagate = False

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    return logger

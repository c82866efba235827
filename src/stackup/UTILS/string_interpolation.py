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
Utilities for string interpolation using environment variables.
"""
import logging
import re
from typing import Mapping

logger = logging.getLogger(__name__)

# $$, $VAR, ${VAR}, ${VAR:-default}, ${VAR-default}, ${VAR:+value}, ${VAR+value}, ${VAR:?err}, ${VAR?err}
_PATTERN = re.compile(
    r"\$(?:(?P<escaped>\$)"
    r"|(?P<plain>[A-Za-z_][A-Za-z0-9_]*)"
    r"|\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?:(?P<op>:?[-+?])(?P<arg>[^}]*))?\})"
)


class EnvironmentInterpolator:
    """
    Expands ``$VAR`` style references the way compose files use them.
    """
    @staticmethod
    def interpolate(template: str, context: Mapping[str, str], strict: bool = False) -> str:
        """
        Interpolates environment variables in the template string using the provided context.

        Unset variables without a default expand to an empty string, or raise
        when ``strict`` is set. ``$$`` yields a literal ``$``.

        :param template: The string containing ``$VAR`` placeholders.
        :param context: The environment variables context.
        :param strict: Raise instead of substituting an empty string.
        :return: The interpolated string.
        :raises KeyError: If a required variable is missing.
        """
        def replace(match):
            if match.group("escaped"):
                return "$"

            name = match.group("plain") or match.group("braced")
            op = match.group("op")
            arg = match.group("arg") or ""
            value = context.get(name)
            # With a colon, an empty value counts as unset
            is_set = value is not None and (value != "" or not (op or "").startswith(":"))

            if op in (":-", "-"):
                return value if is_set else arg
            if op in (":+", "+"):
                return arg if is_set else ""
            if op in (":?", "?"):
                if not is_set:
                    raise KeyError(f"required variable {name} is missing a value: {arg}")
                return value

            if value is None:
                if strict:
                    raise KeyError(f"Variable {name} not found in context")
                logger.warning("The %s variable is not set. Defaulting to a blank string.", name)
                return ""
            return value

        return _PATTERN.sub(replace, template)

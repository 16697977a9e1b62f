"""
Variable interpolation in compose file values.
"""
import logging
import re
from typing import Any, Mapping

from ..MODELS.errors import InterpolationError

logger = logging.getLogger(__name__)

_PATTERN = re.compile(
    r"\$(?:"
    r"(?P<escaped>\$)"
    r"|(?P<named>[_a-zA-Z][_a-zA-Z0-9]*)"
    r"|\{(?P<braced>[_a-zA-Z][_a-zA-Z0-9]*)(?:(?P<op>:?[-?+])(?P<arg>[^}]*))?\}"
    r")"
)


class EnvironmentInterpolator:
    """
    Substitutes variables from a context mapping.

    Supports $VAR, ${VAR}, ${VAR:-default}, ${VAR-default}, ${VAR:+value},
    ${VAR+value}, ${VAR:?message}, ${VAR?message} and $$ for a literal $.
    The colon forms treat an empty value like an unset one. An unset plain
    variable becomes an empty string.
    """

    def __init__(self, context: Mapping[str, str]):
        self.context = context

    def interpolate(self, template: str) -> str:
        """
        :raises InterpolationError: For ${VAR?message} with VAR missing.
        """
        return _PATTERN.sub(self._replace, template)

    def interpolate_all(self, value: Any) -> Any:
        """
        Interpolates every string nested in dicts and lists. Keys are left alone.
        """
        if isinstance(value, str):
            return self.interpolate(value)
        if isinstance(value, dict):
            return {k: self.interpolate_all(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.interpolate_all(v) for v in value]
        return value

    def _replace(self, match: "re.Match") -> str:
        if match.group("escaped"):
            return "$"
        name = match.group("named") or match.group("braced")
        op = match.group("op")
        arg = match.group("arg") or ""
        value = self.context.get(name)
        missing = value is None or (op is not None and op.startswith(":") and value == "")

        if op is None:
            if value is None:
                logger.warning("the %s variable is not set, defaulting to a blank string", name)
                return ""
            return value
        if op.endswith("-"):
            return arg if missing else value
        if op.endswith("+"):
            return "" if missing else arg
        # ? and :?
        if missing:
            raise InterpolationError(name, arg)
        return value

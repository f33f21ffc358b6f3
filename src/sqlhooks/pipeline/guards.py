"""Shared binding checks for customizers.

A customizer that needs a binding which is not present logs a warning and
does nothing; the statement itself carries on.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from sqlhooks.errors import InvalidIdentifierError
from sqlhooks.pipeline.context import MISSING

if TYPE_CHECKING:
    from sqlhooks.pipeline.context import StatementContext

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def find_binding(ctx: StatementContext, name: str, customizer: str, action: str) -> Any:
    """Look up a binding, warning if it is missing.

    Args:
        ctx: Statement context
        name: Binding name
        customizer: Name of the customizer asking, for the log message
        action: What the customizer cannot do without it, e.g. "update counter"

    Returns:
        The bound value, or MISSING (after logging a warning)
    """
    value = ctx.binding.find(name)
    if value is MISSING:
        logger.warning(
            "Missing binding '%s'. Cannot %s",
            name,
            action,
            extra={"event": "missing_binding", "customizer": customizer, "binding": name},
        )
    return value


def check_identifier(value: str, what: str) -> str:
    """Accept plain SQL identifiers (optionally schema-qualified) only.

    Args:
        value: Candidate identifier
        what: Description for the error message, e.g. "table"

    Returns:
        The identifier unchanged

    Raises:
        InvalidIdentifierError: If the value is not a plain identifier
    """
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.match(value):
        raise InvalidIdentifierError(f"Invalid {what} name: {value!r}")
    return value

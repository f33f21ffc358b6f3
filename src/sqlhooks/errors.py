"""Exception types raised by sqlhooks.

Missing bindings are not represented here: they are logged as warnings by the
customizer that needed the value, and the statement carries on.
"""

from __future__ import annotations

from collections.abc import Mapping


class SqlHooksError(Exception):
    """Base class for errors raised by sqlhooks."""


class ValidationFailure(SqlHooksError, ValueError):
    """An entity failed constraint validation before execution.

    Attributes:
        errors: Mapping of property path to violation message, one entry per
            violated property
    """

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        details = ", ".join(f"{path}={message}" for path, message in sorted(self.errors.items()))
        super().__init__(f"Entity contains validation errors. Errors: {{{details}}}")


class TypeConversionFailure(SqlHooksError, TypeError):
    """A timestamp could not be converted to a property's declared type."""

    def __init__(self, property_name: str, declared_type: object) -> None:
        self.property_name = property_name
        self.declared_type = declared_type
        super().__init__(f"Cannot assign a timestamp to property '{property_name}' declared as {declared_type!r}")


class InvalidIdentifierError(SqlHooksError, ValueError):
    """A table, column or channel name is not a plain SQL identifier."""


class UnboundParameterError(SqlHooksError, LookupError):
    """A placeholder in the SQL text has no binding."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No binding for placeholder ':{name}'")


class UnknownCustomizerError(SqlHooksError, LookupError):
    """A configuration kind has no registered customizer factory."""

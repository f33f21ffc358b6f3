"""Statement context passed to every customizer.

Provides a typed view of one in-flight statement: its SQL text, its named
bindings and the connection it runs on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

from sqlhooks.properties import PropertyAccessor, accessor_for

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()


class Binding:
    """Named parameter values for one statement.

    Explicit entries are stored by name. Bean entries register an entity
    under a prefix; ``prefix.property`` names are resolved through the
    entity's PropertyAccessor when looked up, so they reflect the entity's
    current state. An explicit entry shadows a bean-derived value of the
    same name.
    """

    def __init__(self) -> None:
        self._named: dict[str, Any] = {}
        self._beans: dict[str, tuple[Any, PropertyAccessor]] = {}

    def add_named(self, name: str, value: Any) -> None:
        """Bind (or rebind) a value under a name."""
        self._named[name] = value

    def add_bean(self, prefix: str, bean: Any, accessor: PropertyAccessor | None = None) -> None:
        """Expose a bean's properties as ``prefix.property`` bindings."""
        self._beans[prefix] = (bean, accessor or accessor_for(type(bean)))

    def find(self, name: str) -> Any:
        """Look up a binding by name.

        Args:
            name: Binding name, optionally ``prefix.property``

        Returns:
            The bound value (possibly None), or MISSING if nothing is bound
        """
        if name in self._named:
            return self._named[name]

        prefix, dot, prop = name.partition(".")
        if dot and prefix in self._beans:
            bean, accessor = self._beans[prefix]
            if prop in accessor:
                return accessor.get(bean, prop)

        return MISSING

    def bean(self, prefix: str) -> Any:
        """Get the bean registered under a prefix, or MISSING."""
        entry = self._beans.get(prefix)
        return entry[0] if entry else MISSING

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find(name) is not MISSING

    def names(self) -> list[str]:
        """All names that currently resolve, explicit entries first."""
        names = list(self._named)
        for prefix, (_, accessor) in self._beans.items():
            names.extend(f"{prefix}.{prop}" for prop in accessor.names() if f"{prefix}.{prop}" not in self._named)
        return names

    def __repr__(self) -> str:
        return f"Binding(named={self._named!r}, beans={list(self._beans)!r})"


@dataclass
class StatementContext:
    """Read/write view of one statement execution.

    Attributes:
        raw_sql: SQL text as declared, with ``:name`` placeholders
        binding: Named parameter values
        connection: Connection the statement runs on (borrowed, not owned)
        rendered_sql: SQL text sent to the driver, set once binding completes
        parameters: Driver parameters, set once binding completes
        sql_object_type: Data-access type that declared the statement, if any
        method_name: Data-access method that declared the statement, if any
        metadata: Free-form values shared between customizers
    """

    raw_sql: str
    binding: Binding = field(default_factory=Binding)
    connection: Connection | None = None
    rendered_sql: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    sql_object_type: type | None = None
    method_name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_bound(self) -> bool:
        """Check if binding has been finalized."""
        return bool(self.rendered_sql)

    @property
    def source(self) -> str:
        """Human-readable declaration site for log messages."""
        if self.sql_object_type is None:
            return "<statement>"
        if self.method_name:
            return f"{self.sql_object_type.__qualname__}.{self.method_name}"
        return self.sql_object_type.__qualname__

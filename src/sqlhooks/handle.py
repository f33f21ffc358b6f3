"""Statement execution over a SQLAlchemy connection.

A Handle wraps one open ``Connection``. Statements created from it collect
bindings and customizers, then run through the PipelineRunner:

    with Handle.open(engine) as h:
        (
            h.create_update("INSERT INTO posts(content, user_id) VALUES (:content, :author_id)")
            .bind("content", "Yay! Post content!")
            .bind("author_id", 1)
            .add_customizer(counter("users", "posts_count", "author_id"))
            .execute()
        )

Placeholders use ``:name`` or dotted ``:bean.property`` syntax. Dotted names
are rewritten into driver-safe names when the statement is rendered.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine, RowMapping

from sqlhooks.errors import UnboundParameterError
from sqlhooks.pipeline import MISSING, Customizer, PipelineRunner, StatementContext
from sqlhooks.properties import PropertyAccessor

logger = logging.getLogger(__name__)

T = TypeVar("T")
RowMapper = Callable[[RowMapping], Any]

# Quoted literals are matched first so placeholders inside them are left alone
_PLACEHOLDER = re.compile(r"'(?:[^']|'')*'|(?<![:\w]):([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)")


def parameter_names(sql: str) -> list[str]:
    """List placeholder names in order of first appearance."""
    names: list[str] = []
    for match in _PLACEHOLDER.finditer(sql):
        name = match.group(1)
        if name and name not in names:
            names.append(name)
    return names


def driver_name(name: str) -> str:
    """Map a binding name to the parameter name sent to the driver."""
    return name.replace(".", "__")


def render_sql(sql: str) -> str:
    """Rewrite dotted placeholders into driver-safe parameter names."""

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name is None:
            return match.group(0)
        return f":{driver_name(name)}"

    return _PLACEHOLDER.sub(replace, sql)


class SqlStatement(Generic[T]):
    """A statement under construction: SQL text, bindings and customizers."""

    def __init__(self, handle: Handle, sql: str) -> None:
        self.handle = handle
        self.context = StatementContext(raw_sql=sql, connection=handle.connection)
        self.customizers: list[Customizer] = []

    def bind(self, name: str, value: Any) -> SqlStatement[T]:
        self.context.binding.add_named(name, value)
        return self

    def bind_bean(self, prefix: str, bean: Any, accessor: PropertyAccessor | None = None) -> SqlStatement[T]:
        self.context.binding.add_bean(prefix, bean, accessor)
        return self

    def add_customizer(self, customizer: Customizer) -> SqlStatement[T]:
        self.customizers.append(customizer)
        return self

    def add_customizers(self, customizers: Iterable[Customizer]) -> SqlStatement[T]:
        self.customizers.extend(customizers)
        return self

    def declared_by(self, sql_object_type: type | None, method_name: str | None) -> SqlStatement[T]:
        """Record the data-access method this statement belongs to."""
        self.context.sql_object_type = sql_object_type
        self.context.method_name = method_name
        return self

    def _bind(self, ctx: StatementContext) -> None:
        parameters: dict[str, Any] = {}
        for name in parameter_names(ctx.raw_sql):
            value = ctx.binding.find(name)
            if value is MISSING:
                raise UnboundParameterError(name)
            parameters[driver_name(name)] = value
        ctx.parameters = parameters
        ctx.rendered_sql = render_sql(ctx.raw_sql)

    def _run(self, run: Callable[[StatementContext], T]) -> T:
        runner = PipelineRunner(self.customizers)
        return runner.execute(self.context, self._bind, run)


class Update(SqlStatement[int]):
    """INSERT / UPDATE / DELETE statement."""

    def execute(self) -> int:
        """Run the statement.

        Returns:
            Number of affected rows
        """

        def run(ctx: StatementContext) -> int:
            result = self.handle.connection.execute(text(ctx.rendered_sql), ctx.parameters)
            return result.rowcount

        return self._run(run)


class Query(SqlStatement[list[RowMapping]]):
    """SELECT statement. Rows are fetched before after_execution runs."""

    def _rows(self) -> list[RowMapping]:
        def run(ctx: StatementContext) -> list[RowMapping]:
            return list(self.handle.connection.execute(text(ctx.rendered_sql), ctx.parameters).mappings())

        return self._run(run)

    def all(self, mapper: RowMapper | None = None) -> list[Any]:
        rows = self._rows()
        return [mapper(row) for row in rows] if mapper else rows

    def first(self, mapper: RowMapper | None = None) -> Any:
        """First mapped row, or None if there are no rows."""
        rows = self._rows()
        if not rows:
            return None
        return mapper(rows[0]) if mapper else rows[0]

    def one(self, mapper: RowMapper | None = None) -> Any:
        """The only mapped row.

        Raises:
            LookupError: If the query returned zero or several rows
        """
        rows = self._rows()
        if len(rows) != 1:
            raise LookupError(f"Expected exactly one row, got {len(rows)}")
        return mapper(rows[0]) if mapper else rows[0]

    def scalar(self) -> Any:
        """First column of the first row, or None."""
        row = self.first()
        return None if row is None else next(iter(row.values()))


class Handle:
    """Executes statements on one SQLAlchemy connection."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    @classmethod
    @contextmanager
    def open(cls, engine: Engine) -> Iterator[Handle]:
        """Open a connection in a transaction committed when the block exits."""
        with engine.begin() as connection:
            yield cls(connection)

    def execute(self, sql: str, **params: Any) -> int:
        """Run a statement without customizers.

        Returns:
            Number of affected rows
        """
        statement = self.create_update(sql)
        for name, value in params.items():
            statement.bind(name, value)
        return statement.execute()

    def create_update(self, sql: str) -> Update:
        return Update(self, sql)

    def create_query(self, sql: str) -> Query:
        return Query(self, sql)

"""Counter customizer.

Keeps a denormalized count column (e.g. ``users.posts_count``) in step with
writes to a dependent table. After the primary statement succeeds, a follow-up
UPDATE adjusts the column by one for the row identified by a binding. The
follow-up runs on the same connection, inside the caller's transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import field_validator
from sqlalchemy import text

from sqlhooks.config import get_config
from sqlhooks.pipeline.context import MISSING
from sqlhooks.pipeline.customizer import Customizer, CustomizerConfig, FactoryContext, customizer_factory
from sqlhooks.pipeline.guards import check_identifier, find_binding

if TYPE_CHECKING:
    from sqlhooks.pipeline.context import StatementContext

logger = logging.getLogger(__name__)

QUERY_TEMPLATE = "UPDATE {table} SET {column} = {column} {op} 1 WHERE {id_column} = :counter_id"


class CounterConfig(CustomizerConfig):
    kind = "counter"

    table: str
    column: str
    binding: str
    decrementing: bool = False
    id_column: str | None = None

    @field_validator("table", "column", "id_column")
    @classmethod
    def _plain_identifier(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return check_identifier(value, "identifier")


def counter(
    table: str,
    column: str,
    binding: str,
    *,
    decrementing: bool = False,
    id_column: str | None = None,
) -> Customizer:
    """Create a customizer adjusting a count column after execution.

    Args:
        table: Table holding the count
        column: Count column
        binding: Binding holding the id of the row to adjust
        decrementing: Subtract one instead of adding one
        id_column: Column matched against the binding value; defaults to the
            configured default_id_column, read when the customizer is built

    Returns:
        Customizer with an after_execution callback

    Raises:
        InvalidIdentifierError: If a table or column name is not a plain identifier
    """
    query = QUERY_TEMPLATE.format(
        table=check_identifier(table, "table"),
        column=check_identifier(column, "column"),
        id_column=check_identifier(id_column or get_config().default_id_column, "id column"),
        op="-" if decrementing else "+",
    )
    statement = text(query)

    def after_execution(ctx: StatementContext) -> None:
        value = find_binding(ctx, binding, "counter", "update counter")
        if value is MISSING:
            return

        ctx.connection.execute(statement, {"counter_id": value})
        logger.debug("Executed SQL: %s", query, extra={"event": "counter_updated", "table": table, "column": column})

    return Customizer(name="counter", after_execution=after_execution)


@customizer_factory(CounterConfig)
def create_counter(config: CounterConfig, site: FactoryContext) -> Customizer:
    return counter(
        config.table,
        config.column,
        config.binding,
        decrementing=config.decrementing,
        id_column=config.id_column,
    )

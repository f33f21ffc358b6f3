"""SQL logging customizer.

Logs the raw or rendered SQL of each statement after it executed. Purely
observational: never fails the statement.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from sqlhooks.pipeline.customizer import Customizer, CustomizerConfig, FactoryContext, customizer_factory

if TYPE_CHECKING:
    from sqlhooks.pipeline.context import StatementContext

DEFAULT_LOGGER_NAME = "sqlhooks.sql"


class LogLevel(str, Enum):
    """Severity used for logged SQL."""

    LOW = "low"
    INFO = "info"

    @property
    def logging_level(self) -> int:
        return logging.INFO if self is LogLevel.INFO else logging.DEBUG


class LogSqlConfig(CustomizerConfig):
    kind = "log_sql"

    log_raw_sql: bool = False
    level: LogLevel = LogLevel.LOW


def sql_logger(
    sql_object_type: type | None = None,
    *,
    log_raw_sql: bool = False,
    level: LogLevel | str = LogLevel.LOW,
) -> Customizer:
    """Create a customizer logging executed SQL.

    Args:
        sql_object_type: Type whose logger receives the SQL; defaults to
            the ``sqlhooks.sql`` logger
        log_raw_sql: Log the declared SQL instead of the rendered SQL
        level: ``low`` (DEBUG) or ``info`` (INFO)

    Returns:
        Customizer with an after_execution callback
    """
    if sql_object_type is not None:
        target_logger = logging.getLogger(f"{sql_object_type.__module__}.{sql_object_type.__qualname__}")
    else:
        target_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    log_level = LogLevel(level).logging_level

    def after_execution(ctx: StatementContext) -> None:
        sql = ctx.raw_sql if log_raw_sql or not ctx.rendered_sql else ctx.rendered_sql
        target_logger.log(log_level, sql)

    return Customizer(name="log_sql", after_execution=after_execution)


@customizer_factory(LogSqlConfig)
def create_sql_logger(config: LogSqlConfig, site: FactoryContext) -> Customizer:
    return sql_logger(site.sql_object_type, log_raw_sql=config.log_raw_sql, level=config.level)

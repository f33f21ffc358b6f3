"""Built-in customizers.

Importing this package registers a factory for each configuration kind.
"""

from sqlhooks.pipeline.customizers.capitalize import CapitalizeConfig, capitalizer
from sqlhooks.pipeline.customizers.counter import CounterConfig, counter
from sqlhooks.pipeline.customizers.log_sql import LogLevel, LogSqlConfig, sql_logger
from sqlhooks.pipeline.customizers.notify import NotifyConfig, notifier
from sqlhooks.pipeline.customizers.timestamped import (
    TimestampedConfig,
    TimestampedFieldsConfig,
    current_instant,
    field_timestamper,
    timestamper,
)
from sqlhooks.pipeline.customizers.validation import (
    DEFAULT_GROUP,
    Email,
    Groups,
    NotEmpty,
    ValidConfig,
    Validator,
    validating_customizer,
)

__all__ = [
    "capitalizer",
    "sql_logger",
    "timestamper",
    "field_timestamper",
    "current_instant",
    "validating_customizer",
    "counter",
    "notifier",
    "Validator",
    "Groups",
    "NotEmpty",
    "Email",
    "DEFAULT_GROUP",
    "LogLevel",
    "CapitalizeConfig",
    "LogSqlConfig",
    "TimestampedConfig",
    "TimestampedFieldsConfig",
    "ValidConfig",
    "CounterConfig",
    "NotifyConfig",
]

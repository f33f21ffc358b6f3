"""sqlhooks - declarative statement customizers for SQLAlchemy connections.

Cross-cutting behavior (SQL logging, timestamping, validation, counter
maintenance, capitalization, notifications) is declared once on a
data-access type, method or parameter and applied around every execution of
the statement.
"""

from sqlhooks.errors import (
    InvalidIdentifierError,
    SqlHooksError,
    TypeConversionFailure,
    UnboundParameterError,
    UnknownCustomizerError,
    ValidationFailure,
)
from sqlhooks.handle import Handle, Query, Update
from sqlhooks.pipeline import (
    MISSING,
    Binding,
    Customizer,
    CustomizerConfig,
    FactoryContext,
    Phase,
    PipelineRunner,
    StatementContext,
    customizer_factory,
)
from sqlhooks.pipeline.customizers import (
    DEFAULT_GROUP,
    Email,
    Groups,
    LogLevel,
    NotEmpty,
    Validator,
    capitalizer,
    counter,
    field_timestamper,
    notifier,
    sql_logger,
    timestamper,
    validating_customizer,
)
from sqlhooks.properties import PropertyAccessor, accessor_for, register_accessor
from sqlhooks.sqlobject import (
    Bind,
    BindBean,
    SqlObject,
    Timestamped,
    Valid,
    attach,
    capitalize,
    customize,
    log_sql,
    maintain_counter,
    notify,
    on_demand,
    sql_query,
    sql_update,
    timestamped,
)

__all__ = [
    # Errors
    "SqlHooksError",
    "ValidationFailure",
    "TypeConversionFailure",
    "InvalidIdentifierError",
    "UnboundParameterError",
    "UnknownCustomizerError",
    # Pipeline
    "Binding",
    "MISSING",
    "StatementContext",
    "Customizer",
    "CustomizerConfig",
    "FactoryContext",
    "Phase",
    "PipelineRunner",
    "customizer_factory",
    # Customizers
    "capitalizer",
    "sql_logger",
    "timestamper",
    "field_timestamper",
    "validating_customizer",
    "counter",
    "notifier",
    "Validator",
    "Groups",
    "NotEmpty",
    "Email",
    "DEFAULT_GROUP",
    "LogLevel",
    # Properties
    "PropertyAccessor",
    "accessor_for",
    "register_accessor",
    # Execution
    "Handle",
    "Update",
    "Query",
    # Declarative
    "SqlObject",
    "attach",
    "on_demand",
    "sql_update",
    "sql_query",
    "Bind",
    "BindBean",
    "Valid",
    "Timestamped",
    "log_sql",
    "timestamped",
    "capitalize",
    "maintain_counter",
    "notify",
    "customize",
]

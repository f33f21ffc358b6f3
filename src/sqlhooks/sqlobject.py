"""Declarative data-access objects.

Statements are declared on methods of an SqlObject subclass; customizer
configuration is attached to the type, the method, or a parameter::

    @log_sql(level="info")
    class PersonDAO(SqlObject):
        @sql_update(
            "INSERT INTO people(id, first_name, last_name, email, created, modified) "
            "VALUES (:p.id, :p.first_name, :p.last_name, :p.email, :created, :modified)"
        )
        def insert(self, p: Annotated[Person, BindBean(), Valid(), Timestamped()]) -> int: ...

        @sql_update("UPDATE people SET email = :p.email WHERE id = :p.id")
        def update_email(self, p: Annotated[Person, BindBean(), Valid(groups=("email_update",))]) -> int: ...

        @sql_query("SELECT * FROM people WHERE id = :id", mapper=Person, single=True)
        def get(self, id: int) -> Person | None: ...

    dao = on_demand(engine, PersonDAO)

Method bodies are never called. Each configuration record is resolved to its
factory once per (type, method); per call the factories only close over the
call's arguments. Customizers run type-level first, then method-level in
declaration order, then parameter-level in parameter order.
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, TypeVar, get_args, get_origin, get_type_hints

from sqlalchemy.engine import Engine

from sqlhooks.handle import Handle, RowMapper, SqlStatement
from sqlhooks.pipeline import CustomizerConfig, FactoryContext, get_registry
from sqlhooks.pipeline.customizer import FactoryFn
from sqlhooks.pipeline.customizers import (
    CapitalizeConfig,
    CounterConfig,
    LogLevel,
    LogSqlConfig,
    NotifyConfig,
    TimestampedConfig,
    TimestampedFieldsConfig,
    ValidConfig,
    Validator,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
S = TypeVar("S", bound="SqlObject")

CONFIGS_ATTR = "__sqlhooks_configs__"

# Parameter-scoped configuration, used inside Annotated[...]
Valid = ValidConfig
Timestamped = TimestampedFieldsConfig


@dataclass(frozen=True)
class Bind:
    """Bind a parameter under a name (defaults to the parameter name)."""

    name: str | None = None


@dataclass(frozen=True)
class BindBean:
    """Expose a parameter's properties as ``prefix.property`` bindings.

    The prefix defaults to the parameter name.
    """

    prefix: str | None = None


class StatementKind(Enum):
    UPDATE = "update"
    QUERY = "query"


def _declare(target: Any, config: CustomizerConfig) -> Any:
    """Attach a configuration record to a type, a function or an SqlMethod."""
    if isinstance(target, SqlMethod):
        target.declare(config)
    elif isinstance(target, type):
        own = target.__dict__.get(CONFIGS_ATTR, ())
        setattr(target, CONFIGS_ATTR, (config, *own))
    else:
        target.__dict__.setdefault(CONFIGS_ATTR, []).append(config)
    return target


def customize(*configs: CustomizerConfig) -> Callable[[F], F]:
    """Attach arbitrary configuration records (for custom factories)."""

    def decorator(target: F) -> F:
        # Applied last-to-first so the records keep their written order
        for config in reversed(configs):
            _declare(target, config)
        return target

    return decorator


def log_sql(log_raw_sql: bool = False, level: LogLevel | str = LogLevel.LOW) -> Callable[[F], F]:
    """Log executed SQL for a type or a method."""
    return customize(LogSqlConfig(log_raw_sql=log_raw_sql, level=LogLevel(level)))


def timestamped(field_name: str = "now") -> Callable[[F], F]:
    """Bind the current instant under ``field_name``."""
    return customize(TimestampedConfig(field_name=field_name))


def capitalize(*bindings: str) -> Callable[[F], F]:
    """Upper-case the named bindings before they are bound."""
    return customize(CapitalizeConfig(bindings=bindings))


def maintain_counter(
    *,
    table: str,
    column: str,
    binding: str,
    decrementing: bool = False,
    id_column: str | None = None,
) -> Callable[[F], F]:
    """Adjust ``table.column`` by one after the statement executes."""
    return customize(
        CounterConfig(table=table, column=column, binding=binding, decrementing=decrementing, id_column=id_column)
    )


def notify(*, channel: str, binding: str) -> Callable[[F], F]:
    """Publish the value of ``binding`` on ``channel`` after the statement executes."""
    return customize(NotifyConfig(channel=channel, binding=binding))


@dataclass
class _ParameterPlan:
    name: str
    binder: Bind | BindBean
    customizers: list[tuple[CustomizerConfig, FactoryFn]] = field(default_factory=list)


@dataclass
class _MethodPlan:
    signature: inspect.Signature
    customizers: list[tuple[CustomizerConfig, FactoryFn]]
    parameters: list[_ParameterPlan]


def _as_mapper(mapper: RowMapper | type | None) -> RowMapper | None:
    if isinstance(mapper, type):
        target = mapper
        return lambda row: target(**row)
    return mapper


class SqlMethod:
    """Descriptor executing a declared statement when the method is called."""

    def __init__(
        self,
        fn: Callable[..., Any],
        sql: str,
        kind: StatementKind,
        mapper: RowMapper | type | None = None,
        single: bool = False,
    ) -> None:
        self.fn = fn
        self.sql = sql
        self.kind = kind
        self.mapper = _as_mapper(mapper)
        self.single = single
        self.name = fn.__name__
        # Decorators below this one were applied bottom-up
        self.configs: list[CustomizerConfig] = list(reversed(fn.__dict__.get(CONFIGS_ATTR, [])))
        self._plans: dict[type, _MethodPlan] = {}
        self._lock = threading.Lock()
        functools.update_wrapper(self, fn)  # type: ignore[arg-type]

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def declare(self, config: CustomizerConfig) -> None:
        """Add a configuration record declared above the statement decorator."""
        self.configs.insert(0, config)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self

        @functools.wraps(self.fn)
        def bound(*args: Any, **kwargs: Any) -> Any:
            return self.invoke(instance, *args, **kwargs)

        return bound

    def plan_for(self, owner: type) -> _MethodPlan:
        """Resolve configuration to factories for one SqlObject type (cached)."""
        plan = self._plans.get(owner)
        if plan is None:
            with self._lock:
                plan = self._plans.get(owner)
                if plan is None:
                    plan = self._build_plan(owner)
                    self._plans[owner] = plan
        return plan

    def _build_plan(self, owner: type) -> _MethodPlan:
        registry = get_registry()
        declared = [config for klass in reversed(owner.__mro__) for config in klass.__dict__.get(CONFIGS_ATTR, ())]
        declared.extend(self.configs)
        customizers = [(config, registry.resolve(config)) for config in declared]

        signature = inspect.signature(self.fn)
        hints = get_type_hints(self.fn, include_extras=True)
        parameters: list[_ParameterPlan] = []

        for index, param in enumerate(signature.parameters.values()):
            if index == 0 or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue

            binder: Bind | BindBean = Bind()
            param_customizers: list[tuple[CustomizerConfig, FactoryFn]] = []
            annotation = hints.get(param.name)
            if get_origin(annotation) is Annotated:
                for item in get_args(annotation)[1:]:
                    if isinstance(item, (Bind, BindBean)):
                        binder = item
                    elif isinstance(item, CustomizerConfig):
                        param_customizers.append((item, registry.resolve(item)))

            parameters.append(_ParameterPlan(param.name, binder, param_customizers))

        logger.debug(
            "Resolved %s.%s: %d method customizers, parameters %s",
            owner.__qualname__,
            self.name,
            len(customizers),
            [p.name for p in parameters],
        )
        return _MethodPlan(signature=signature, customizers=customizers, parameters=parameters)

    def invoke(self, instance: SqlObject, *args: Any, **kwargs: Any) -> Any:
        owner = type(instance)
        plan = self.plan_for(owner)
        arguments = plan.signature.bind(instance, *args, **kwargs)
        arguments.apply_defaults()
        params = instance.factory_params()

        with instance.open_handle() as handle:
            statement: SqlStatement[Any]
            if self.kind is StatementKind.UPDATE:
                statement = handle.create_update(self.sql)
            else:
                statement = handle.create_query(self.sql)
            statement.declared_by(owner, self.name)

            site = FactoryContext(sql_object_type=owner, method_name=self.name, params=params)
            for config, factory in plan.customizers:
                customizer = factory(config, site)
                if customizer is not None:
                    statement.add_customizer(customizer)

            for parameter in plan.parameters:
                value = arguments.arguments[parameter.name]
                if isinstance(parameter.binder, BindBean):
                    statement.bind_bean(parameter.binder.prefix or parameter.name, value)
                else:
                    statement.bind(parameter.binder.name or parameter.name, value)

                param_site = FactoryContext(
                    sql_object_type=owner,
                    method_name=self.name,
                    parameter_name=parameter.name,
                    argument=value,
                    params=params,
                )
                for config, factory in parameter.customizers:
                    customizer = factory(config, param_site)
                    if customizer is not None:
                        statement.add_customizer(customizer)

            if self.kind is StatementKind.UPDATE:
                return statement.execute()  # type: ignore[attr-defined]
            if self.single:
                return statement.first(self.mapper)  # type: ignore[attr-defined]
            return statement.all(self.mapper)  # type: ignore[attr-defined]


def sql_update(sql: str) -> Callable[[Callable[..., Any]], SqlMethod]:
    """Declare an INSERT / UPDATE / DELETE method returning the affected row count."""

    def decorator(fn: Callable[..., Any]) -> SqlMethod:
        return SqlMethod(fn, sql, StatementKind.UPDATE)

    return decorator


def sql_query(
    sql: str,
    mapper: RowMapper | type | None = None,
    single: bool = False,
) -> Callable[[Callable[..., Any]], SqlMethod]:
    """Declare a SELECT method.

    Args:
        sql: Statement text
        mapper: Callable or type building a result from each row mapping
        single: Return the first row (or None) instead of a list
    """

    def decorator(fn: Callable[..., Any]) -> SqlMethod:
        return SqlMethod(fn, sql, StatementKind.QUERY, mapper=mapper, single=single)

    return decorator


class SqlObject:
    """Base class for declarative data-access objects.

    Instances run statements either on a fixed Handle (sharing its
    connection and transaction) or on an engine, opening a transaction per
    call.
    """

    def __init__(
        self,
        handle: Handle | None = None,
        *,
        engine: Engine | None = None,
        validator: Validator | None = None,
    ) -> None:
        if (handle is None) == (engine is None):
            raise ValueError("Provide exactly one of handle or engine")
        self._handle = handle
        self._engine = engine
        self.validator = validator or Validator()

    def factory_params(self) -> dict[str, Any]:
        """Collaborators made available to customizer factories."""
        return {"validator": self.validator}

    @contextmanager
    def open_handle(self) -> Iterator[Handle]:
        if self._handle is not None:
            yield self._handle
        else:
            assert self._engine is not None
            with Handle.open(self._engine) as handle:
                yield handle


def attach(handle: Handle, sql_object_type: type[S], validator: Validator | None = None) -> S:
    """Create a data-access object running on an open handle."""
    return sql_object_type(handle, validator=validator)


def on_demand(engine: Engine, sql_object_type: type[S], validator: Validator | None = None) -> S:
    """Create a data-access object opening a transaction per call."""
    return sql_object_type(engine=engine, validator=validator)

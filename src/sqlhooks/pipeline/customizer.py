"""Customizer records and factory registry.

Defines the Customizer record (three optional phase callbacks), the
CustomizerConfig base for declarative configuration, and the registry that
maps each configuration kind to the factory building its customizer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict

from sqlhooks.errors import UnknownCustomizerError

if TYPE_CHECKING:
    from sqlhooks.pipeline.context import StatementContext

logger = logging.getLogger(__name__)


# Type aliases
PhaseFn = Callable[["StatementContext"], None]
FactoryFn = Callable[["CustomizerConfig", "FactoryContext"], "Customizer | None"]


class Phase(Enum):
    """Statement lifecycle phases, in execution order."""

    BEFORE_BINDING = "before_binding"
    BEFORE_EXECUTION = "before_execution"
    AFTER_EXECUTION = "after_execution"


@dataclass(frozen=True)
class Customizer:
    """A unit of behavior hooked into a statement's lifecycle.

    Attributes:
        name: Identifier used in log messages
        before_binding: Runs before parameters are bound; may rewrite bindings
        before_execution: Runs after binding, before the statement executes
        after_execution: Runs after the statement executed successfully
    """

    name: str
    before_binding: PhaseFn | None = None
    before_execution: PhaseFn | None = None
    after_execution: PhaseFn | None = None

    def callback(self, phase: Phase) -> PhaseFn | None:
        """Get the callback for a phase, or None if this customizer skips it."""
        return getattr(self, phase.value)

    @property
    def phases(self) -> frozenset[Phase]:
        return frozenset(p for p in Phase if self.callback(p) is not None)


class CustomizerConfig(BaseModel):
    """Base for immutable declarative configuration records.

    Subclasses set ``kind``, the tag used to find their factory.
    """

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[str] = ""


@dataclass(frozen=True)
class FactoryContext:
    """Where a configuration was declared and what it applies to.

    Attributes:
        sql_object_type: Data-access type carrying the declaration
        method_name: Method the statement belongs to
        parameter_name: Parameter the configuration is attached to, if any
        argument: Call argument for parameter-scoped configuration
        params: Shared collaborators (e.g. the validator)
    """

    sql_object_type: type | None = None
    method_name: str | None = None
    parameter_name: str | None = None
    argument: Any = None
    params: Mapping[str, Any] = field(default_factory=dict)


class _FactoryRegistry:
    """Global registry of customizer factories keyed by configuration kind."""

    def __init__(self) -> None:
        self._factories: dict[str, FactoryFn] = {}

    def register(self, kind: str, factory: FactoryFn) -> None:
        """Register a factory for a configuration kind."""
        if kind in self._factories and self._factories[kind] is not factory:
            logger.debug("Replacing customizer factory for '%s'", kind)
        self._factories[kind] = factory

    def resolve(self, config: CustomizerConfig) -> FactoryFn:
        """Find the factory for a configuration record.

        Raises:
            UnknownCustomizerError: If no factory is registered for its kind
        """
        factory = self._factories.get(config.kind)
        if factory is None:
            name = config.kind or type(config).__name__
            raise UnknownCustomizerError(f"No customizer factory registered for '{name}'")
        return factory

    def kinds(self) -> list[str]:
        return sorted(self._factories)

    def clear(self) -> None:
        """Clear all registered factories (for testing)."""
        self._factories.clear()


# Global registry
_registry = _FactoryRegistry()


def get_registry() -> _FactoryRegistry:
    """Get the global factory registry."""
    return _registry


def customizer_factory(
    config_type: type[CustomizerConfig],
) -> Callable[[FactoryFn], FactoryFn]:
    """Decorator to register a function as the factory for a config type.

    Args:
        config_type: CustomizerConfig subclass the factory builds from

    Returns:
        Decorator function

    Example:
        @customizer_factory(CounterConfig)
        def create_counter(config: CounterConfig, site: FactoryContext) -> Customizer:
            ...
    """
    if not config_type.kind:
        raise ValueError(f"{config_type.__name__} does not declare a kind")

    def decorator(fn: FactoryFn) -> FactoryFn:
        _registry.register(config_type.kind, fn)
        fn._config_type = config_type  # type: ignore[attr-defined]
        return fn

    return decorator


def create_customizer(config: CustomizerConfig, site: FactoryContext | None = None) -> Customizer | None:
    """Build a customizer from a configuration record (without a cached factory).

    Args:
        config: Declarative configuration
        site: Declaration site and call argument

    Returns:
        Customizer, or None if the factory contributes nothing for this site
    """
    factory = _registry.resolve(config)
    return factory(config, site or FactoryContext())

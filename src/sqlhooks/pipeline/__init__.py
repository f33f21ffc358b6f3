"""Statement customization pipeline for sqlhooks.

This module implements the statement lifecycle hooks:
- Customizers with optional before_binding / before_execution /
  after_execution callbacks
- A registry resolving declarative configuration to customizers
- A runner invoking callbacks in registration order, stopping at the first
  failure

Lifecycle:
    before_binding -> bind -> before_execution -> execute -> after_execution
"""

from sqlhooks.pipeline.context import MISSING, Binding, StatementContext
from sqlhooks.pipeline.customizer import (
    Customizer,
    CustomizerConfig,
    FactoryContext,
    Phase,
    create_customizer,
    customizer_factory,
    get_registry,
)
from sqlhooks.pipeline.runner import PipelineRunner

# Register the built-in factories
from sqlhooks.pipeline import customizers  # noqa: E402,F401  isort: skip

__all__ = [
    "Binding",
    "MISSING",
    "StatementContext",
    "Customizer",
    "CustomizerConfig",
    "FactoryContext",
    "Phase",
    "PipelineRunner",
    "create_customizer",
    "customizer_factory",
    "get_registry",
]

"""Capitalize customizer.

Rewrites named string bindings to upper case before they are bound.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import field_validator

from sqlhooks.pipeline.context import MISSING
from sqlhooks.pipeline.customizer import Customizer, CustomizerConfig, FactoryContext, customizer_factory
from sqlhooks.pipeline.guards import find_binding

if TYPE_CHECKING:
    from sqlhooks.pipeline.context import StatementContext

logger = logging.getLogger(__name__)


class CapitalizeConfig(CustomizerConfig):
    kind = "capitalize"

    bindings: tuple[str, ...]

    @field_validator("bindings")
    @classmethod
    def _not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("capitalize needs at least one binding name")
        return value


def capitalizer(*bindings: str) -> Customizer:
    """Create a customizer upper-casing the given bindings.

    Args:
        *bindings: Binding names to capitalize

    Returns:
        Customizer with a before_binding callback
    """
    names = tuple(bindings)

    def before_binding(ctx: StatementContext) -> None:
        for name in names:
            value = find_binding(ctx, name, "capitalize", "capitalize")
            if value is MISSING or value is None:
                continue
            ctx.binding.add_named(name, str(value).upper())

    return Customizer(name="capitalize", before_binding=before_binding)


@customizer_factory(CapitalizeConfig)
def create_capitalizer(config: CapitalizeConfig, site: FactoryContext) -> Customizer:
    return capitalizer(*config.bindings)

"""Pipeline runner driving the statement lifecycle.

Runs customizers in registration order around the executor's bind and
execute steps, stopping at the first failure.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, TypeVar

from sqlhooks.config import get_config
from sqlhooks.pipeline.customizer import Customizer, Phase

if TYPE_CHECKING:
    from sqlhooks.pipeline.context import StatementContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineRunner:
    """Executes customizer callbacks phase by phase.

    Attributes:
        customizers: Customizers in registration order
        debug: Log every phase and callback at DEBUG
    """

    def __init__(self, customizers: Iterable[Customizer] = (), debug: bool | None = None) -> None:
        """Initialize runner with customizers.

        Args:
            customizers: Customizers in the order they should run
            debug: Override the configured debug flag
        """
        self.customizers: list[Customizer] = list(customizers)
        self.debug = get_config().debug if debug is None else debug

    def add(self, customizer: Customizer) -> None:
        """Register a customizer after those already present."""
        self.customizers.append(customizer)

    def run_phase(self, phase: Phase, ctx: StatementContext) -> None:
        """Run one phase's callbacks in registration order.

        Args:
            phase: Lifecycle phase
            ctx: Statement context

        Raises:
            Exception: The first callback failure, unchanged. Callbacks after
                the failing one are not invoked.
        """
        if self.debug:
            logger.debug("Phase %s for %s", phase.value, ctx.source)

        for customizer in self.customizers:
            callback = customizer.callback(phase)
            if callback is None:
                continue

            if self.debug:
                logger.debug("Running customizer '%s' (%s)", customizer.name, phase.value)

            try:
                callback(ctx)
            except Exception as e:
                logger.error(
                    "Customizer '%s' failed in %s for %s: %s: %s",
                    customizer.name,
                    phase.value,
                    ctx.source,
                    type(e).__name__,
                    str(e),
                    extra={"event": "customizer_failed", "customizer": customizer.name, "phase": phase.value},
                )
                raise

    def execute(
        self,
        ctx: StatementContext,
        bind: Callable[[StatementContext], None],
        run: Callable[[StatementContext], T],
    ) -> T:
        """Drive the full lifecycle of one statement.

        before_binding -> bind -> before_execution -> run -> after_execution

        Args:
            ctx: Statement context
            bind: Executor step finalizing parameters (sets rendered SQL)
            run: Executor step running the statement

        Returns:
            Whatever ``run`` returned

        Raises:
            Exception: Any customizer or executor failure, unchanged. Phases
                after the failure do not run.
        """
        started = time.perf_counter()

        self.run_phase(Phase.BEFORE_BINDING, ctx)
        bind(ctx)
        self.run_phase(Phase.BEFORE_EXECUTION, ctx)
        result = run(ctx)
        self.run_phase(Phase.AFTER_EXECUTION, ctx)

        if self.debug:
            logger.debug(
                "Statement %s completed in %.2fms",
                ctx.source,
                (time.perf_counter() - started) * 1000,
            )
        return result

    def get_order(self, phase: Phase | None = None) -> list[str]:
        """Get customizer names in execution order.

        Args:
            phase: Only include customizers with a callback for this phase

        Returns:
            List of customizer names
        """
        return [c.name for c in self.customizers if phase is None or c.callback(phase) is not None]

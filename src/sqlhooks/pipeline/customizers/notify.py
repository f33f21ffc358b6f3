"""Notify customizer.

Publishes a notification on a channel after the primary statement succeeds,
carrying the value of a binding as payload. Channel and payload are passed as
statement parameters; the channel must also be a plain identifier. A binding
that is missing or None is skipped with a warning.
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


class NotifyConfig(CustomizerConfig):
    kind = "notify"

    channel: str
    binding: str

    @field_validator("channel")
    @classmethod
    def _plain_channel(cls, value: str) -> str:
        return check_identifier(value, "channel")


def notifier(channel: str, binding: str) -> Customizer:
    """Create a customizer publishing a notification after execution.

    Args:
        channel: Channel to notify on
        binding: Binding whose value becomes the payload

    Returns:
        Customizer with an after_execution callback

    Raises:
        InvalidIdentifierError: If the channel is not a plain identifier
    """
    check_identifier(channel, "channel")
    function = check_identifier(get_config().notify_function, "notify function")
    query = f"SELECT {function}(:channel, :payload)"
    statement = text(query)

    def after_execution(ctx: StatementContext) -> None:
        value = find_binding(ctx, binding, "notify", "notify")
        if value is MISSING:
            return
        if value is None:
            logger.warning(
                "Binding '%s' is None. Cannot notify",
                binding,
                extra={"event": "null_binding", "customizer": "notify", "binding": binding},
            )
            return

        ctx.connection.execute(statement, {"channel": channel, "payload": str(value)})
        logger.debug("Executed SQL: %s", query, extra={"event": "notified", "channel": channel})

    return Customizer(name="notify", after_execution=after_execution)


@customizer_factory(NotifyConfig)
def create_notifier(config: NotifyConfig, site: FactoryContext) -> Customizer:
    return notifier(config.channel, config.binding)

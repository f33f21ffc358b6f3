"""Timestamping customizers.

Two forms:

- Single field: binds the current instant under one name (``:now`` by
  default). The call arguments are left alone.
- Created/modified fields: binds the current instant under the created and
  modified names (only modified for existing records) and writes the same
  instant onto the entity's matching properties, converted to each
  property's declared type.

One instant is computed per statement, so created and modified always match
on insert.
"""

from __future__ import annotations

import logging
import threading
import types
from datetime import datetime, tzinfo
from typing import TYPE_CHECKING, Annotated, Any, Union, get_args, get_origin

from pydantic import AwareDatetime, NaiveDatetime

from sqlhooks.config import get_config
from sqlhooks.errors import TypeConversionFailure
from sqlhooks.pipeline.customizer import Customizer, CustomizerConfig, FactoryContext, customizer_factory
from sqlhooks.properties import accessor_for

if TYPE_CHECKING:
    from sqlhooks.pipeline.context import StatementContext

logger = logging.getLogger(__name__)

_clock_lock = threading.Lock()
_last_instant: datetime | None = None


class TimestampedConfig(CustomizerConfig):
    kind = "timestamped"

    field_name: str = "now"


class TimestampedFieldsConfig(CustomizerConfig):
    kind = "timestamped_fields"

    is_new_record: bool = True
    created_field_name: str = "created"
    modified_field_name: str = "modified"


def current_instant(tz: tzinfo | None = None) -> datetime:
    """Get the current time as an aware datetime.

    Successive calls never go backwards, even if the system clock does.

    Args:
        tz: Timezone for the result; defaults to the configured timezone

    Returns:
        Timezone-aware datetime
    """
    global _last_instant

    zone = tz or get_config().tzinfo
    with _clock_lock:
        now = datetime.now(zone)
        if _last_instant is not None and now < _last_instant:
            now = _last_instant.astimezone(zone)
        _last_instant = now
    return now


def _unwrap(annotation: Any) -> Any:
    """Strip Annotated metadata and Optional wrappers from a type."""
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            annotation = get_args(annotation)[0]
        elif origin is Union or origin is types.UnionType:
            members = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(members) != 1:
                return annotation
            annotation = members[0]
        else:
            return annotation


def convert_instant(instant: datetime, annotation: Any, property_name: str, tz: tzinfo | None = None) -> Any:
    """Convert an instant to a property's declared type.

    Args:
        instant: Timezone-aware instant
        annotation: Declared type of the destination property
        property_name: Destination property, for the error message
        tz: Timezone for naive results; defaults to the configured timezone

    Returns:
        Aware datetime, naive datetime, epoch milliseconds or ISO-8601 text

    Raises:
        TypeConversionFailure: If the declared type is none of those
    """
    target = _unwrap(annotation)

    if target is datetime or target is AwareDatetime:
        return instant
    if target is NaiveDatetime:
        return instant.astimezone(tz or get_config().tzinfo).replace(tzinfo=None)
    if target is int:
        return int(instant.timestamp() * 1000)
    if target is str:
        return instant.isoformat()

    raise TypeConversionFailure(property_name, annotation)


def timestamper(field_name: str = "now") -> Customizer:
    """Create a customizer binding the current instant under one name.

    Args:
        field_name: Binding name

    Returns:
        Customizer with a before_binding callback
    """

    def before_binding(ctx: StatementContext) -> None:
        ctx.binding.add_named(field_name, current_instant())

    return Customizer(name="timestamped", before_binding=before_binding)


def field_timestamper(
    entity: Any = None,
    *,
    is_new_record: bool = True,
    created_field_name: str = "created",
    modified_field_name: str = "modified",
) -> Customizer:
    """Create a customizer maintaining created/modified timestamps.

    Args:
        entity: Argument object to update, or None to only bind
        is_new_record: Bind and set the created field as well as modified
        created_field_name: Binding and property name for creation time
        modified_field_name: Binding and property name for modification time

    Returns:
        Customizer with a before_binding callback
    """
    names = [created_field_name, modified_field_name] if is_new_record else [modified_field_name]

    def before_binding(ctx: StatementContext) -> None:
        now = current_instant()

        # Convert everything before writing anything
        updates = []
        if entity is not None:
            accessor = accessor_for(type(entity))
            updates = [
                (prop, convert_instant(now, prop.annotation, name))
                for name in names
                if (prop := accessor.find(name)) is not None
            ]

        for name in names:
            ctx.binding.add_named(name, now)
        if entity is None:
            return

        for prop, value in updates:
            prop.set(entity, value)

        logger.debug("Timestamped %s fields %s", type(entity).__qualname__, names)

    return Customizer(name="timestamped_fields", before_binding=before_binding)


@customizer_factory(TimestampedConfig)
def create_timestamper(config: TimestampedConfig, site: FactoryContext) -> Customizer:
    return timestamper(config.field_name)


@customizer_factory(TimestampedFieldsConfig)
def create_field_timestamper(config: TimestampedFieldsConfig, site: FactoryContext) -> Customizer:
    return field_timestamper(
        site.argument,
        is_new_record=config.is_new_record,
        created_field_name=config.created_field_name,
        modified_field_name=config.modified_field_name,
    )

"""Named property access over entity objects.

A PropertyAccessor is a table of ``name -> (getter, setter)`` built once per
entity type. Customizers use it to read bean bindings and to write values
(such as timestamps) back onto the caller's object without introspecting the
object on every statement.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, get_origin, get_type_hints

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Getter = Callable[[Any], Any]
Setter = Callable[[Any, Any], None]


@dataclass(frozen=True)
class Property:
    """A single named property of an entity type.

    Attributes:
        name: Property name, as used in bindings
        annotation: Declared type, including ``Annotated`` metadata
        getter: Reads the value from an instance
        setter: Writes the value to an instance
    """

    name: str
    annotation: Any
    getter: Getter
    setter: Setter

    def get(self, obj: Any) -> Any:
        return self.getter(obj)

    def set(self, obj: Any, value: Any) -> None:
        self.setter(obj, value)


def _attribute_property(name: str, annotation: Any) -> Property:
    def getter(obj: Any) -> Any:
        return getattr(obj, name)

    def setter(obj: Any, value: Any) -> None:
        setattr(obj, name, value)

    return Property(name=name, annotation=annotation, getter=getter, setter=setter)


def field_annotations(entity_type: type) -> dict[str, Any]:
    """Map a type's declared fields to their annotations.

    Pydantic models contribute ``model_fields`` (constraint metadata folded
    back into ``Annotated``), dataclasses their ``fields()``, and any other
    class its public, non-ClassVar annotated attributes.
    """
    if isinstance(entity_type, type) and issubclass(entity_type, BaseModel):
        return {
            name: Annotated[(info.annotation, *info.metadata)] if info.metadata else info.annotation
            for name, info in entity_type.model_fields.items()
        }

    hints = get_type_hints(entity_type, include_extras=True)
    if dataclasses.is_dataclass(entity_type):
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(entity_type)}
    return {
        name: hint for name, hint in hints.items() if not name.startswith("_") and get_origin(hint) is not ClassVar
    }


class PropertyAccessor:
    """Get and set named properties of one entity type."""

    def __init__(self, entity_type: type, properties: Mapping[str, Property]) -> None:
        self.entity_type = entity_type
        self._properties = dict(properties)

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def __iter__(self) -> Iterator[Property]:
        return iter(self._properties.values())

    def names(self) -> list[str]:
        return list(self._properties)

    def find(self, name: str) -> Property | None:
        """Look up a property by name, or None if the type has no such property."""
        return self._properties.get(name)

    def get(self, obj: Any, name: str) -> Any:
        """Read a property value.

        Raises:
            KeyError: If the type has no property with this name
        """
        return self._properties[name].get(obj)

    def set(self, obj: Any, name: str, value: Any) -> None:
        """Write a property value.

        Raises:
            KeyError: If the type has no property with this name
        """
        self._properties[name].set(obj, value)

    @classmethod
    def from_type(cls, entity_type: type) -> PropertyAccessor:
        """Build an accessor table from a type's declared fields.

        Args:
            entity_type: Class to describe

        Returns:
            PropertyAccessor for the type
        """
        properties = {
            name: _attribute_property(name, annotation) for name, annotation in field_annotations(entity_type).items()
        }
        logger.debug("Built property table for %s: %s", entity_type.__qualname__, list(properties))
        return cls(entity_type, properties)


_accessors: dict[type, PropertyAccessor] = {}
_accessors_lock = threading.Lock()


def register_accessor(accessor: PropertyAccessor) -> None:
    """Register an explicit accessor table, replacing any derived one."""
    with _accessors_lock:
        _accessors[accessor.entity_type] = accessor


def accessor_for(entity_type: type) -> PropertyAccessor:
    """Get the accessor for a type, building and caching it on first use."""
    accessor = _accessors.get(entity_type)
    if accessor is None:
        with _accessors_lock:
            accessor = _accessors.get(entity_type)
            if accessor is None:
                accessor = PropertyAccessor.from_type(entity_type)
                _accessors[entity_type] = accessor
    return accessor


def clear_accessors() -> None:
    """Drop all cached accessors (for testing)."""
    with _accessors_lock:
        _accessors.clear()

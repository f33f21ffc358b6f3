"""Bean validation customizer.

Constraints are declared on entity fields with ``typing.Annotated`` metadata
that pydantic understands, optionally tagged with validation groups::

    @dataclass
    class Person:
        first_name: NotEmpty
        last_name: NotEmpty
        email: Annotated[Email | None, Groups("email_update")] = None

A field is checked when it carries such metadata (also inside
``Optional``), is a constrained pydantic type such as ``Email``, or has a
``Groups`` marker. Validation runs against the declared type, so ``None``
stays legal for optional fields. The validator collects every violation
before failing, and the failing statement never reaches the executor.
"""

from __future__ import annotations

import logging
import threading
import types
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, Union, get_args, get_origin

from pydantic import BaseModel, EmailStr, StringConstraints, TypeAdapter, ValidationError

from sqlhooks.config import get_config
from sqlhooks.errors import ValidationFailure
from sqlhooks.pipeline.customizer import Customizer, CustomizerConfig, FactoryContext, customizer_factory
from sqlhooks.properties import field_annotations

if TYPE_CHECKING:
    from sqlhooks.pipeline.context import StatementContext

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "default"

# Constraint aliases for entity annotations
NotEmpty = Annotated[str, StringConstraints(min_length=1)]
Email = EmailStr


@dataclass(frozen=True)
class Groups:
    """Annotation marker restricting a field's constraints to named groups."""

    names: tuple[str, ...]

    def __init__(self, *names: str) -> None:
        object.__setattr__(self, "names", tuple(names))


@dataclass(frozen=True)
class _FieldRule:
    name: str
    adapter: TypeAdapter[Any]
    groups: frozenset[str]


class ValidConfig(CustomizerConfig):
    kind = "valid"

    groups: tuple[str, ...] = ()


def _split_groups(annotation: Any) -> tuple[Any, set[str], bool]:
    """Strip Groups markers from an annotation, looking inside Optional/Union.

    Returns:
        (annotation without markers, group names, whether any constraint remains)
    """
    origin = get_origin(annotation)

    if origin is Annotated:
        base, *metadata = get_args(annotation)
        inner, groups, constrained = _split_groups(base)
        constraints = []
        for item in metadata:
            if isinstance(item, Groups):
                groups.update(item.names)
            else:
                constraints.append(item)
        target = Annotated[(inner, *constraints)] if constraints else inner
        return target, groups, constrained or bool(constraints)

    if origin is Union or origin is types.UnionType:
        members = []
        groups = set()
        constrained = False
        for member in get_args(annotation):
            stripped, member_groups, member_constrained = _split_groups(member)
            members.append(stripped)
            groups.update(member_groups)
            constrained = constrained or member_constrained
        return Union[tuple(members)], groups, constrained

    return annotation, set(), _is_constrained_type(annotation)


def _is_constrained_type(annotation: Any) -> bool:
    # Pydantic types such as EmailStr carry their own validation
    return (
        isinstance(annotation, type)
        and hasattr(annotation, "__get_pydantic_core_schema__")
        and not issubclass(annotation, BaseModel)
    )


class Validator:
    """Checks entities against their annotated field constraints.

    Rules are compiled once per entity type. Construct one instance and pass
    it to whatever composes the pipeline.
    """

    def __init__(self, default_group: str | None = None) -> None:
        self.default_group = default_group or get_config().default_validation_group
        self._rules: dict[type, list[_FieldRule]] = {}
        self._lock = threading.Lock()

    def _compile(self, entity_type: type) -> list[_FieldRule]:
        rules: list[_FieldRule] = []
        for name, annotation in field_annotations(entity_type).items():
            if name.startswith("_"):
                continue

            target, groups, constrained = _split_groups(annotation)
            if not constrained and not groups:
                continue

            rules.append(
                _FieldRule(
                    name=name,
                    adapter=TypeAdapter(target),
                    groups=frozenset(groups or {self.default_group}),
                )
            )

        logger.debug("Compiled %d validation rules for %s", len(rules), entity_type.__qualname__)
        return rules

    def rules_for(self, entity_type: type) -> list[_FieldRule]:
        rules = self._rules.get(entity_type)
        if rules is None:
            with self._lock:
                rules = self._rules.get(entity_type)
                if rules is None:
                    rules = self._compile(entity_type)
                    self._rules[entity_type] = rules
        return rules

    def validate(self, entity: Any, groups: Iterable[str] = ()) -> dict[str, str]:
        """Validate an entity and collect every violation.

        Args:
            entity: Object to validate
            groups: Groups to check; empty means the default group only

        Returns:
            Mapping of property path to message (empty when valid)
        """
        wanted = frozenset(groups) or frozenset({self.default_group})
        errors: dict[str, str] = {}

        for rule in self.rules_for(type(entity)):
            if not rule.groups & wanted:
                continue
            try:
                rule.adapter.validate_python(getattr(entity, rule.name, None))
            except ValidationError as e:
                for error in e.errors():
                    path = ".".join(str(part) for part in (rule.name, *error["loc"]))
                    errors.setdefault(path, error["msg"])

        return errors

    def check(self, entity: Any, groups: Iterable[str] = ()) -> None:
        """Validate an entity, raising if anything is violated.

        Raises:
            ValidationFailure: With every violation found
        """
        errors = self.validate(entity, groups)
        if errors:
            raise ValidationFailure(errors)

    def valid(self, entity: Any, groups: Iterable[str] = ()) -> Any:
        """Return the entity if it validates, else raise ValidationFailure."""
        self.check(entity, groups)
        return entity


def validating_customizer(entity: Any, validator: Validator, groups: Iterable[str] = ()) -> Customizer:
    """Create a customizer validating an argument before execution.

    Args:
        entity: Argument object to validate
        validator: Validator instance
        groups: Validation groups to check

    Returns:
        Customizer with a before_execution callback
    """
    wanted = tuple(groups)

    def before_execution(ctx: StatementContext) -> None:
        validator.check(entity, wanted)

    return Customizer(name="valid", before_execution=before_execution)


@customizer_factory(ValidConfig)
def create_validating_customizer(config: ValidConfig, site: FactoryContext) -> Customizer:
    validator = site.params.get("validator")
    if validator is None:
        validator = Validator()
        logger.debug("No validator supplied for %s, using a fresh one", site.method_name)
    return validating_customizer(site.argument, validator, config.groups)

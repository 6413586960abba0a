# This project was developed with assistance from AI tools.
"""Variant resolution and schema lookup for actor forms.

A variant is the combination of discriminants that decides which fields an
actor must supply: actor type, entity type, nationality (individuals only)
and guarantee method (guarantors only). Every schema lookup goes through a
resolved ``VariantTag`` instead of branching on raw record fields.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Any, Union

from db.enums import ActorType, EntityType, GuaranteeMethod, Nationality
from pydantic import BaseModel, Discriminator, Tag, TypeAdapter, ValidationError

from ..core.errors import (
    ActorValidationError,
    FieldIssue,
    TabConfigurationError,
    issues_from_error,
)
from ..schemas.forms import REFERENCE_LIMITS, STRICT_MODELS, TAB_MODELS
from ..schemas.shared import CommercialReferenceIn, PersonalReferenceIn
from .tabs import get_tab

_PERSONAL_REFERENCES = TypeAdapter(list[PersonalReferenceIn])
_COMMERCIAL_REFERENCES = TypeAdapter(list[CommercialReferenceIn])

_IDENTITY_PROFILES: tuple[tuple[EntityType, Nationality | None], ...] = (
    (EntityType.INDIVIDUAL, Nationality.MEXICAN),
    (EntityType.INDIVIDUAL, Nationality.FOREIGN),
    (EntityType.COMPANY, None),
)

_GUARANTEE_METHODS: dict[ActorType, tuple[GuaranteeMethod | None, ...]] = {
    ActorType.TENANT: (None,),
    ActorType.LANDLORD: (None,),
    ActorType.AVAL: (GuaranteeMethod.PROPERTY,),
    ActorType.JOINT_OBLIGOR: (GuaranteeMethod.INCOME, GuaranteeMethod.PROPERTY),
}


@dataclass(frozen=True)
class VariantTag:
    """Resolved discriminants of one actor record."""

    actor_type: ActorType
    entity_type: EntityType
    nationality: Nationality | None
    guarantee_method: GuaranteeMethod | None

    @property
    def is_company(self) -> bool:
        return self.entity_type == EntityType.COMPANY

    @property
    def is_foreign(self) -> bool:
        return self.nationality == Nationality.FOREIGN

    @property
    def awaiting_guarantee_method(self) -> bool:
        """A joint obligor that has not chosen how to guarantee yet."""
        return self.actor_type == ActorType.JOINT_OBLIGOR and self.guarantee_method is None

    @property
    def profile(self) -> str:
        if self.is_company:
            return "company"
        return self.nationality.value.lower()

    @property
    def key(self) -> str:
        nationality = self.nationality.value if self.nationality else "-"
        method = self.guarantee_method.value if self.guarantee_method else "-"
        return f"{self.actor_type.value}:{self.entity_type.value}:{nationality}:{method}"

    def slot_keys(self) -> tuple[str, ...]:
        """Schema table keys to try, most specific first."""
        method = self.guarantee_method.value if self.guarantee_method else "unset"
        return (f"{self.profile}/{method}", self.profile, method, "*")


def _read(record: Any, name: str) -> Any:
    if record is None:
        return None
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _coerce(enum_cls, value, default):
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return default


def resolve_variant(
    actor_type: ActorType,
    record: Any,
    overrides: Mapping[str, Any] | None = None,
) -> VariantTag:
    """Resolve the variant of an ORM actor or a plain dict.

    Args:
        actor_type: Kind of actor the record belongs to.
        record: Stored actor (ORM instance) or a field mapping.
        overrides: Incoming field values that take precedence over the
            stored ones (a tab save may change nationality or method).

    Unparseable discriminants fall back to the defaults so that the chosen
    schema reports the bad value as a field error.
    """

    def pick(name: str) -> Any:
        if overrides is not None and overrides.get(name) is not None:
            return overrides[name]
        return _read(record, name)

    entity_type = _coerce(EntityType, pick("entity_type"), EntityType.INDIVIDUAL)
    nationality = None
    if entity_type == EntityType.INDIVIDUAL:
        nationality = _coerce(Nationality, pick("nationality"), Nationality.MEXICAN)

    if actor_type == ActorType.AVAL:
        method = GuaranteeMethod.PROPERTY
    elif actor_type == ActorType.JOINT_OBLIGOR:
        method = _coerce(GuaranteeMethod, pick("guarantee_method"), None)
    else:
        method = None

    return VariantTag(actor_type, entity_type, nationality, method)


def enumerate_variants(actor_type: ActorType) -> list[VariantTag]:
    """Every complete variant an actor type supports."""
    return [
        VariantTag(actor_type, entity_type, nationality, method)
        for entity_type, nationality in _IDENTITY_PROFILES
        for method in _GUARANTEE_METHODS[actor_type]
    ]


def get_tab_schema(actor_type: ActorType, tab_name: str, variant: VariantTag) -> type[BaseModel]:
    """Schema validating a single save of ``tab_name`` for ``variant``.

    Raises:
        TabConfigurationError: Unknown tab, or a tab that does not apply to
            the variant (e.g. ``employment`` for a company).
    """
    tab = get_tab(actor_type, tab_name)
    if not tab.applies_to(variant.is_company):
        raise TabConfigurationError(
            f"Tab '{tab_name}' does not apply to {variant.entity_type.value} {actor_type.value}"
        )
    models = TAB_MODELS[actor_type].get(tab_name, {})
    for key in variant.slot_keys():
        if key in models:
            return models[key]
    raise TabConfigurationError(f"No schema for tab '{tab_name}' and variant {variant.key}")


def get_strict_schema(variant: VariantTag) -> type[BaseModel]:
    """Completion schema for a fully resolved variant.

    Raises:
        TabConfigurationError: If the variant is not one the registry supports
            (a joint obligor without a guarantee method).
    """
    models = STRICT_MODELS[variant.actor_type]
    for key in variant.slot_keys()[:2]:
        if key in models:
            return models[key]
    raise TabConfigurationError(f"No completion schema for variant {variant.key}")


@lru_cache
def strict_union(actor_type: ActorType) -> TypeAdapter:
    """Adapter over every strict model of an actor type, tagged by variant key."""
    choices = tuple(
        Annotated[get_strict_schema(variant), Tag(variant.key)]
        for variant in enumerate_variants(actor_type)
    )

    def _discriminate(value: Any) -> str:
        return resolve_variant(actor_type, value).key

    return TypeAdapter(Annotated[Union[choices], Discriminator(_discriminate)])


def _method_issue() -> FieldIssue:
    return FieldIssue(path="guarantee_method", message="Choose a guarantee method")


def validate_tab(
    actor_type: ActorType,
    tab_name: str,
    variant: VariantTag,
    data: Mapping[str, Any],
) -> dict[str, Any]:
    """Validate one tab save and return only the fields the caller sent, normalized.

    Raises:
        TabConfigurationError: Unknown or inapplicable tab.
        ActorValidationError: The payload does not satisfy the tab schema.
    """
    schema = get_tab_schema(actor_type, tab_name, variant)
    try:
        model = schema.model_validate(dict(data))
    except ValidationError as exc:
        raise ActorValidationError(
            f"Invalid data for tab '{tab_name}'", issues_from_error(exc)
        ) from exc
    return model.model_dump(exclude_unset=True)


def validate_strict(variant: VariantTag, record: Mapping[str, Any]) -> list[FieldIssue]:
    """Field-level problems keeping ``record`` from completing; empty when valid."""
    if variant.awaiting_guarantee_method:
        return [_method_issue()]
    try:
        get_strict_schema(variant).model_validate(dict(record))
    except ValidationError as exc:
        return issues_from_error(exc)
    return []


def validate_self_update(actor_type: ActorType, record: Mapping[str, Any]) -> BaseModel:
    """Validate a full self-service record against the actor type's strict union.

    Raises:
        ActorValidationError: With field paths relative to the record.
    """
    variant = resolve_variant(actor_type, record)
    if variant.awaiting_guarantee_method:
        raise ActorValidationError("Incomplete actor information", [_method_issue()])
    try:
        return strict_union(actor_type).validate_python(dict(record))
    except ValidationError as exc:
        prefix = f"{variant.key}."
        issues = [
            FieldIssue(path=issue.path.removeprefix(prefix), message=issue.message)
            for issue in issues_from_error(exc)
        ]
        raise ActorValidationError("Incomplete actor information", issues) from exc


def validate_references(
    variant: VariantTag,
    personal: list[Any] | None,
    commercial: list[Any] | None,
) -> tuple[list[dict[str, Any]] | None, list[dict[str, Any]] | None]:
    """Validate reference lists sent with a save.

    Saves accept up to the actor type's maximum; the minimum is only
    enforced at submission so references can be entered gradually.

    Returns:
        The normalized ``(personal, commercial)`` lists; ``None`` for a list
        that was not sent.

    Raises:
        ActorValidationError: Wrong reference kind for the entity type, too
            many entries, or an invalid entry.
    """
    if personal is None and commercial is None:
        return None, None

    limits = REFERENCE_LIMITS.get(variant.actor_type)
    if limits is None:
        raise ActorValidationError(
            f"{variant.actor_type.value} records do not take references",
            [FieldIssue(path="personal_references", message="References not accepted")],
        )

    expected, unexpected = (
        ("commercial_references", "personal_references")
        if variant.is_company
        else ("personal_references", "commercial_references")
    )
    sent = {"personal_references": personal, "commercial_references": commercial}
    if sent[unexpected]:
        kind = "company" if variant.is_company else "individual"
        raise ActorValidationError(
            f"{unexpected} are not accepted for a {kind} {variant.actor_type.value}",
            [FieldIssue(path=unexpected, message=f"Use {expected} instead")],
        )

    entries = sent[expected]
    if entries is None:
        return None, None
    if len(entries) > limits.maximum:
        raise ActorValidationError(
            "Too many references",
            [FieldIssue(path=expected, message=f"At most {limits.maximum} references allowed")],
        )

    adapter = _COMMERCIAL_REFERENCES if variant.is_company else _PERSONAL_REFERENCES
    try:
        models = adapter.validate_python(entries)
    except ValidationError as exc:
        raise ActorValidationError("Invalid references", issues_from_error(exc, expected)) from exc
    normalized = [model.model_dump() for model in models]
    if variant.is_company:
        return None, normalized
    return normalized, None


@lru_cache(maxsize=512)
def _field_adapter(model: type[BaseModel], name: str) -> TypeAdapter:
    field = model.model_fields[name]
    return TypeAdapter(Annotated[field.annotation, field])


def _owning_model(actor_type: ActorType, variant: VariantTag, name: str) -> type[BaseModel] | None:
    for tab_name in TAB_MODELS[actor_type]:
        try:
            model = get_tab_schema(actor_type, tab_name, variant)
        except TabConfigurationError:
            continue
        if name in model.model_fields:
            return model
    return None


def validate_fields(
    actor_type: ActorType,
    variant: VariantTag,
    data: Mapping[str, Any],
) -> dict[str, Any]:
    """Validate fields one by one, without requiring the rest of their tab.

    Used for staff edits that touch a handful of fields across tabs. Each
    value must still satisfy its own field type for the variant.

    Raises:
        ActorValidationError: Unknown fields or invalid values.
    """
    issues: list[FieldIssue] = []
    clean: dict[str, Any] = {}
    for name, value in data.items():
        model = _owning_model(actor_type, variant, name)
        if model is None:
            issues.append(FieldIssue(path=name, message=f"Not a field of this {actor_type.value}"))
            continue
        adapter = _field_adapter(model, name)
        try:
            clean[name] = adapter.dump_python(adapter.validate_python(value))
        except ValidationError as exc:
            issues.extend(issues_from_error(exc, name))
    if issues:
        raise ActorValidationError("Invalid actor data", issues)
    return clean

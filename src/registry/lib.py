"""Component definition registry.

Definitions are catalog entries: a typed property set plus an opaque template
and listing metadata. The registry keeps them in insertion order so the
editor palette is stable, and guards system-owned entries against
modification. It never touches instances: a removed or deactivated
definition simply leaves its instances to resolve as orphans or with a
warning.
"""

import logging
import re
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from src.schema import PropertySchema, SchemaError, parse_properties, schema_defaults

logger = logging.getLogger(__name__)

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")
IMMUTABLE_FIELDS = frozenset({"id", "slug"})


# =============================================================================
# Errors
# =============================================================================


class RegistryError(Exception):
    """Base class for registry mutation errors."""


class DuplicateSlug(RegistryError):
    """Raised when registering a slug that already exists."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"A component with slug '{slug}' already exists")


class DefinitionNotFound(RegistryError):
    """Raised when a slug is not in the registry."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"No component definition with slug '{slug}'")


class ProtectedDefinition(RegistryError):
    """Raised when modifying a system-owned definition."""

    def __init__(self, slug: str, action: str):
        self.slug = slug
        self.action = action
        super().__init__(f"System component '{slug}' cannot be {action}")


# =============================================================================
# Model
# =============================================================================


def slugify(value: str) -> str:
    """Lower-case, dash-separated slug of a display name.

    Example:
        >>> slugify("Pricing Table!")
        'pricing-table'
    """
    return _SLUG_INVALID.sub("-", value.lower()).strip("-")


class ComponentDefinition(BaseModel):
    """A catalog entry describing one kind of component.

    Attributes:
        id: Generated unique identifier.
        slug: Unique, immutable lookup key. Derived from name when omitted.
        name: Display name.
        description: Palette description.
        category: Palette grouping.
        icon: Optional icon name for the palette.
        properties: Ordered mapping of property key to schema. The stored
            ``schema: {"properties": {...}}`` shape is accepted too.
        template: Opaque render descriptor, never interpreted here.
        is_system: Protected from modification and removal.
        is_active: Listed in the palette.
        created_at: Creation timestamp, used as the palette tie-break.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    slug: str = Field("", description="Unique, immutable lookup key")
    name: str = Field(..., min_length=1)
    description: str = ""
    category: str = "general"
    icon: str | None = None
    properties: dict[str, PropertySchema] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("properties", "schema"),
    )
    template: str = ""
    is_system: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="before")
    @classmethod
    def _derive_slug(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("slug") and data.get("name"):
            data = {**data, "slug": slugify(str(data["name"]))}
        return data

    @field_validator("slug")
    @classmethod
    def _check_slug(cls, value: str) -> str:
        if not value:
            raise ValueError("slug must not be empty")
        return value

    @field_validator("properties", mode="before")
    @classmethod
    def _parse_properties(cls, value: Any) -> Any:
        return parse_properties(value)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComponentDefinition":
        """Build a definition from stored or user-supplied data.

        Raises:
            SchemaError: If the definition or its property set is invalid.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise SchemaError(str(e)) from e

    def defaults(self) -> dict[str, Any]:
        """Canonical default value of every property."""
        return schema_defaults(self.properties)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form, readable again by from_dict."""
        data = self.model_dump(mode="json", exclude={"properties"})
        data["properties"] = {
            key: schema.to_dict() for key, schema in self.properties.items()
        }
        return data


# =============================================================================
# Registry
# =============================================================================


class DefinitionRegistry:
    """In-memory catalog of component definitions keyed by slug.

    Example:
        >>> registry = DefinitionRegistry()
        >>> registry.register(ComponentDefinition(name="Hero Banner")).slug
        'hero-banner'
        >>> [d.slug for d in registry.list_active()]
        ['hero-banner']
    """

    def __init__(self, definitions: Iterable[ComponentDefinition] = ()):
        self._by_slug: dict[str, ComponentDefinition] = {}
        self._slug_by_id: dict[str, str] = {}
        for definition in definitions:
            self.register(definition)

    def __len__(self) -> int:
        return len(self._by_slug)

    def __iter__(self) -> Iterator[ComponentDefinition]:
        return iter(list(self._by_slug.values()))

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, str) and self.find(ref) is not None

    def register(self, definition: ComponentDefinition) -> ComponentDefinition:
        """Add a definition.

        Raises:
            DuplicateSlug: If the slug (or id) is already registered.
        """
        if definition.slug in self._by_slug or definition.id in self._slug_by_id:
            raise DuplicateSlug(definition.slug)
        self._by_slug[definition.slug] = definition
        self._slug_by_id[definition.id] = definition.slug
        logger.debug(f"Registered definition '{definition.slug}'")
        return definition

    def get(self, slug: str) -> ComponentDefinition:
        """Look up a definition by slug.

        Raises:
            DefinitionNotFound: If no definition has this slug.
        """
        try:
            return self._by_slug[slug]
        except KeyError:
            raise DefinitionNotFound(slug) from None

    def find(self, ref: str | None) -> ComponentDefinition | None:
        """Look up by slug or id, returning None when absent."""
        if not ref:
            return None
        ref = str(ref)
        if ref in self._by_slug:
            return self._by_slug[ref]
        slug = self._slug_by_id.get(ref)
        return self._by_slug.get(slug) if slug else None

    def list_active(self, category: str | None = None) -> list[ComponentDefinition]:
        """Active definitions in insertion order, optionally by category."""
        return [
            d
            for d in self._by_slug.values()
            if d.is_active and (category is None or d.category == category)
        ]

    def list_all(self) -> list[ComponentDefinition]:
        """Every definition, active or not, in insertion order."""
        return list(self._by_slug.values())

    def categories(self) -> list[str]:
        """Distinct categories of active definitions, first-seen order."""
        seen: dict[str, None] = {}
        for definition in self.list_active():
            seen.setdefault(definition.category, None)
        return list(seen)

    def deactivate(self, slug: str) -> ComponentDefinition:
        """Hide a definition from the palette.

        Raises:
            DefinitionNotFound: If the slug is unknown.
            ProtectedDefinition: If the definition is system-owned.
        """
        definition = self.get(slug)
        if definition.is_system:
            raise ProtectedDefinition(slug, "deactivated")
        definition.is_active = False
        logger.info(f"Deactivated definition '{slug}'")
        return definition

    def activate(self, slug: str) -> ComponentDefinition:
        """List a definition in the palette again."""
        definition = self.get(slug)
        definition.is_active = True
        logger.info(f"Activated definition '{slug}'")
        return definition

    def update(self, slug: str, **changes: Any) -> ComponentDefinition:
        """Replace fields of a definition, revalidating the result.

        Raises:
            ValueError: If changes touch id or slug.
            ProtectedDefinition: If the definition is system-owned.
            SchemaError: If the updated definition is invalid.
        """
        immutable = IMMUTABLE_FIELDS & changes.keys()
        if immutable:
            raise ValueError(f"Cannot change {', '.join(sorted(immutable))} of '{slug}'")
        current = self.get(slug)
        if current.is_system:
            raise ProtectedDefinition(slug, "modified")

        data = current.to_dict()
        if "schema" in changes:
            changes["properties"] = changes.pop("schema")
        data.update(changes)
        updated = ComponentDefinition.from_dict(data)
        self._by_slug[slug] = updated
        logger.info(f"Updated definition '{slug}': {sorted(changes)}")
        return updated

    def remove(self, slug: str) -> ComponentDefinition:
        """Delete a definition. Existing instances are left untouched.

        Raises:
            DefinitionNotFound: If the slug is unknown.
            ProtectedDefinition: If the definition is system-owned.
        """
        definition = self.get(slug)
        if definition.is_system:
            raise ProtectedDefinition(slug, "removed")
        del self._by_slug[slug]
        self._slug_by_id.pop(definition.id, None)
        logger.info(f"Removed definition '{slug}'")
        return definition

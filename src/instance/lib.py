"""Instance tree data model.

Containers (pages, headers and footers) own an ordered collection of
component instances. Each instance references a definition either directly
(``definition_ref``) or, for legacy data, through an id embedded in its
overrides blob, and carries its layout coordinates: a named position, an
optional column and a dense order within its ``(position, column)`` bucket.
"""

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, Field, field_validator

from src.config import EnvVar, get_environment


class TypeTag(str, Enum):
    """Closed set of instance discriminators.

    Built-in tags carry their own property schema; ``page_component`` and the
    legacy ``component`` tag take their schema from a definition.
    """

    LOGO = "logo"
    MENU = "menu"
    TEXT = "text"
    SOCIAL = "social"
    CONTACT = "contact"
    COPYRIGHT = "copyright"
    AUTH = "auth"
    CART = "cart"
    SEARCH = "search"
    DYNAMIC_AI = "dynamic_ai"
    PAGE_COMPONENT = "page_component"
    COMPONENT = "component"  # Legacy: target stored in overrides["component_id"]


class Visibility(str, Enum):
    """Device classes an instance is displayed on."""

    ALL = "all"
    DESKTOP = "desktop"
    MOBILE = "mobile"


class ContainerKind(str, Enum):
    """Kinds of instance containers."""

    PAGE = "page"
    HEADER = "header"
    FOOTER = "footer"


COLUMN_PREFIX = "column_"

# Named (non-column) regions per container kind, in display order
REGIONS: dict[ContainerKind, tuple[str, ...]] = {
    ContainerKind.HEADER: ("topbar", "header", "subheader"),
    ContainerKind.FOOTER: ("footer_bar",),
    ContainerKind.PAGE: ("content",),
}

# Container kinds that accept column_<n> positions
COLUMN_KINDS = frozenset({ContainerKind.FOOTER, ContainerKind.PAGE})

# Container setting that switches a region on or off
REGION_FLAGS: dict[str, str] = {
    "topbar": "show_topbar",
    "header": "show_header",
    "subheader": "show_subheader",
    "footer_bar": "show_footer_bar",
}

DEFAULT_SETTINGS: dict[ContainerKind, dict[str, Any]] = {
    ContainerKind.HEADER: {
        "layout_type": "standard",
        "show_topbar": False,
        "show_header": True,
        "show_subheader": False,
    },
    ContainerKind.FOOTER: {
        "layout_type": "standard",
        "show_footer": True,
        "show_footer_bar": True,
    },
    ContainerKind.PAGE: {},
}


def parse_column_position(position: str) -> int | None:
    """Column number encoded in a ``column_<n>`` position, else None.

    Example:
        >>> parse_column_position("column_2")
        2
        >>> parse_column_position("footer_bar") is None
        True
    """
    if not position.startswith(COLUMN_PREFIX):
        return None
    suffix = position[len(COLUMN_PREFIX) :]
    if not (suffix.isascii() and suffix.isdecimal()):
        return None
    return int(suffix)


def column_position(column: int) -> str:
    """The ``column_<n>`` position name for a column number."""
    return f"{COLUMN_PREFIX}{column}"


def parse_overrides(raw: Any) -> tuple[dict[str, Any], bool]:
    """Normalise a stored overrides blob to a dict.

    Overrides may be stored as a decoded mapping, a JSON string, UTF-8 bytes
    or be absent. Anything that does not decode to a JSON object yields an
    empty dict.

    Returns:
        Tuple of (overrides dict, parsed cleanly).
    """
    if raw is None:
        return {}, True
    if isinstance(raw, Mapping):
        return dict(raw), True
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return {}, False
    if not isinstance(raw, str):
        return {}, False
    if not raw.strip():
        return {}, True
    try:
        decoded = json.loads(raw)
    except (ValueError, RecursionError):
        return {}, False
    if not isinstance(decoded, dict):
        return {}, False
    return decoded, True


# =============================================================================
# Models
# =============================================================================


def _now() -> datetime:
    return datetime.now(UTC)


class ComponentInstance(BaseModel):
    """One placed usage of a component inside a container.

    Attributes:
        id: Unique within the owning container.
        type_tag: Discriminator selecting resolution behaviour.
        name: Editor label.
        definition_ref: Direct reference to a definition (id or slug).
            Accepted in input as ``page_component_id`` too.
        overrides: Instance property values. Kept as stored (mapping, JSON
            string or None) and normalised at resolution time.
            Accepted in input as ``page_component_data`` or ``settings`` too.
        position: Named layout region or ``column_<n>``.
        column: Column number, required to match ``column_<n>`` positions.
        order: Dense 1-based rank within the bucket, 0 when inactive.
        is_active: Inactive instances are unranked and not rendered.
        visibility: Device gating, orthogonal to ordering.
        custom_classes: Extra CSS classes passed to the renderer.
        created_at: Creation time, tie-break for equal orders.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    type_tag: TypeTag = Field(
        TypeTag.PAGE_COMPONENT, validation_alias=AliasChoices("type_tag", "type")
    )
    name: str = ""
    definition_ref: str | None = Field(
        None, validation_alias=AliasChoices("definition_ref", "page_component_id")
    )
    overrides: Any = Field(
        None,
        validation_alias=AliasChoices("overrides", "page_component_data", "settings"),
    )
    position: str = Field(..., min_length=1)
    column: int | None = Field(None, ge=1)
    order: int = Field(0, ge=0)
    is_active: bool = True
    visibility: Visibility = Visibility.ALL
    custom_classes: str = ""
    created_at: datetime = Field(default_factory=_now)

    @field_validator("type_tag", mode="before")
    @classmethod
    def _normalise_tag(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_")
        return value

    @field_validator("definition_ref", mode="before")
    @classmethod
    def _stringify_ref(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("overrides", mode="before")
    @classmethod
    def _decode_bytes(cls, value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8", errors="replace")
        return value

    @property
    def bucket(self) -> tuple[str, int | None]:
        """The ``(position, column)`` pair this instance is ranked in."""
        return (self.position, self.column)

    def settings(self) -> dict[str, Any]:
        """Overrides decoded to a dict (empty when malformed)."""
        return parse_overrides(self.overrides)[0]

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form."""
        return self.model_dump(mode="json")


class Container(BaseModel):
    """A page, header or footer owning component instances.

    Attributes:
        id: Container identifier.
        kind: Page, header or footer; decides the valid positions.
        name: Display name.
        columns: Column count bounding ``column_<n>`` positions.
        settings: Container-level flags (e.g. ``show_footer_bar``).
        instances: Owned instances, in storage order.
        updated_at: Time of the last save.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    kind: ContainerKind
    name: str = ""
    columns: int = Field(1, ge=1)
    settings: dict[str, Any] = Field(default_factory=dict)
    instances: list[ComponentInstance] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_now)

    def get(self, instance_id: str) -> ComponentInstance | None:
        """Instance with the given id, or None."""
        for instance in self.instances:
            if instance.id == instance_id:
                return instance
        return None

    def valid_positions(self) -> list[str]:
        """Every position this container accepts, regions first."""
        positions = list(REGIONS[self.kind])
        if self.kind in COLUMN_KINDS:
            positions += [column_position(n) for n in range(1, self.columns + 1)]
        return positions

    def accepts_region(self, position: str) -> bool:
        """Whether the position names a region of this container kind.

        Column positions are accepted by kind only; range checks belong to
        the layout operations.
        """
        if parse_column_position(position) is not None:
            return self.kind in COLUMN_KINDS
        return position in REGIONS[self.kind]

    def region_enabled(self, position: str) -> bool:
        """Whether container settings display the given region."""
        if self.kind is ContainerKind.FOOTER and not self.settings.get(
            "show_footer", True
        ):
            return False
        flag = REGION_FLAGS.get(position)
        if flag is None:
            return True
        default = DEFAULT_SETTINGS[self.kind].get(flag, True)
        return bool(self.settings.get(flag, default))

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now()

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form."""
        return self.model_dump(mode="json")


# =============================================================================
# Factories
# =============================================================================


def new_container(
    kind: ContainerKind | str,
    name: str = "",
    columns: int | None = None,
    settings: dict[str, Any] | None = None,
    container_id: str | None = None,
) -> Container:
    """Create an empty container with kind-specific default settings.

    Footers default to COMPOSER_FOOTER_COLUMNS columns, other kinds to one.
    """
    kind = ContainerKind(kind)
    if columns is None:
        columns = (
            get_environment(EnvVar.COMPOSER_FOOTER_COLUMNS)
            if kind is ContainerKind.FOOTER
            else 1
        )
    data: dict[str, Any] = {
        "kind": kind,
        "name": name or f"Default {kind.value.title()}",
        "columns": columns,
        "settings": {**DEFAULT_SETTINGS[kind], **(settings or {})},
    }
    if container_id:
        data["id"] = container_id
    return Container(**data)


def instance_from_definition(
    definition: Any,
    position: str,
    column: int | None = None,
    type_tag: TypeTag = TypeTag.PAGE_COMPONENT,
    name: str | None = None,
) -> ComponentInstance:
    """Clone a definition's defaults into a fresh, unplaced instance.

    Args:
        definition: A ComponentDefinition (anything with id, name, defaults()).
        position: Target position.
        column: Target column.
        type_tag: Tag of the new instance.
        name: Editor label, defaults to the definition name.
    """
    return ComponentInstance(
        type_tag=type_tag,
        name=name or definition.name,
        definition_ref=definition.id,
        overrides=definition.defaults(),
        position=position,
        column=column,
    )


DEFAULT_HEADER_INSTANCES: list[dict[str, Any]] = [
    {"name": "Logo", "type": "logo", "position": "header", "order": 1},
    {
        "name": "Primary Menu",
        "type": "menu",
        "position": "header",
        "order": 2,
        "settings": {"menu_id": 1},
    },
    {"name": "Authentication", "type": "auth", "position": "header", "order": 3},
    {"name": "Shopping Cart", "type": "cart", "position": "header", "order": 4},
]

DEFAULT_FOOTER_INSTANCES: list[dict[str, Any]] = [
    {"name": "Logo", "type": "logo", "position": "column_1", "column": 1, "order": 1},
    {
        "name": "About Text",
        "type": "text",
        "position": "column_1",
        "column": 1,
        "order": 2,
        "settings": {"text": "A brief description of your company or website."},
    },
    {
        "name": "Links Menu",
        "type": "menu",
        "position": "column_2",
        "column": 2,
        "order": 1,
        "settings": {"menu_id": 1, "title": "Quick Links"},
    },
    {
        "name": "Contact Info",
        "type": "contact",
        "position": "column_3",
        "column": 3,
        "order": 1,
        "settings": {
            "title": "Contact Us",
            "address": "123 Street Name, City, Country",
            "phone": "+1 (555) 123-4567",
            "email": "info@example.com",
        },
    },
    {
        "name": "Social Media",
        "type": "social",
        "position": "column_3",
        "column": 3,
        "order": 2,
        "settings": {
            "title": "Follow Us",
            "networks": [
                {"name": "facebook", "url": "https://facebook.com"},
                {"name": "twitter", "url": "https://twitter.com"},
                {"name": "instagram", "url": "https://instagram.com"},
            ],
        },
    },
    {"name": "Copyright", "type": "copyright", "position": "footer_bar", "order": 1},
]


def default_header(name: str = "Default Header Layout") -> Container:
    """Header with logo, primary menu, auth buttons and cart."""
    container = new_container(ContainerKind.HEADER, name=name)
    container.instances = [
        ComponentInstance.model_validate(entry) for entry in DEFAULT_HEADER_INSTANCES
    ]
    return container


def default_footer(name: str = "Default Footer Layout") -> Container:
    """Three-column footer with logo, about text, links, contact, social and copyright."""
    container = new_container(ContainerKind.FOOTER, name=name, columns=3)
    container.instances = [
        ComponentInstance.model_validate(entry) for entry in DEFAULT_FOOTER_INSTANCES
    ]
    return container

"""Tag dispatch table.

Every ``TypeTag`` has exactly one handler. Built-in tags (logo, menu and the
other header/footer widgets) carry their own property schema; definition
tags take the schema of the definition they reference.
"""

from dataclasses import dataclass, field
from typing import Any

from src.instance import TypeTag
from src.schema import PropertySchema, parse_properties, schema_defaults


@dataclass(frozen=True)
class TagHandler:
    """Resolution behaviour of one tag.

    Attributes:
        tag: The tag handled.
        label: Palette label.
        needs_definition: Props come from a referenced definition.
        properties: Built-in schema, used when no definition is referenced.
    """

    tag: TypeTag
    label: str
    needs_definition: bool = False
    properties: dict[str, PropertySchema] = field(default_factory=dict)

    def defaults(self) -> dict[str, Any]:
        """Canonical built-in defaults."""
        return schema_defaults(self.properties)


def _builtin(tag: TypeTag, label: str, properties: dict[str, Any]) -> TagHandler:
    return TagHandler(tag=tag, label=label, properties=parse_properties(properties))


def _text(default: str = "", label: str | None = None) -> dict[str, Any]:
    return {"kind": "text", "default": default, "label": label}


TAG_HANDLERS: dict[TypeTag, TagHandler] = {
    TypeTag.LOGO: _builtin(
        TypeTag.LOGO,
        "Logo",
        {
            "logo": {"kind": "media", "default": "", "label": "Logo Image"},
            "site_name": _text("Site Name", "Site Name"),
            "custom_logo_classes": _text(label="Logo Classes"),
        },
    ),
    TypeTag.MENU: _builtin(
        TypeTag.MENU,
        "Menu",
        {
            "menu_id": {"kind": "number", "default": 0, "label": "Menu"},
            "title": _text("Menu", "Title"),
        },
    ),
    TypeTag.TEXT: _builtin(
        TypeTag.TEXT,
        "Text",
        {
            "title": _text(label="Title"),
            "text": {
                "kind": "richText",
                "default": "Text content goes here",
                "label": "Text",
            },
        },
    ),
    TypeTag.SOCIAL: _builtin(
        TypeTag.SOCIAL,
        "Social Links",
        {
            "title": _text(label="Title"),
            "networks": {
                "kind": "array",
                "itemTemplate": {"name": "", "url": ""},
                "default": [],
                "label": "Networks",
            },
        },
    ),
    TypeTag.CONTACT: _builtin(
        TypeTag.CONTACT,
        "Contact Info",
        {
            "title": _text(label="Title"),
            "address": _text(label="Address"),
            "phone": _text(label="Phone"),
            "email": _text(label="Email"),
        },
    ),
    TypeTag.COPYRIGHT: _builtin(
        TypeTag.COPYRIGHT,
        "Copyright",
        {"text": _text(label="Copyright Text")},
    ),
    TypeTag.AUTH: _builtin(
        TypeTag.AUTH,
        "Auth Buttons",
        {
            "show_login": {"kind": "boolean", "default": True, "label": "Show Login"},
            "show_register": {
                "kind": "boolean",
                "default": True,
                "label": "Show Register",
            },
            "login_text": _text("Login", "Login Text"),
            "register_text": _text("Register", "Register Text"),
        },
    ),
    TypeTag.CART: _builtin(
        TypeTag.CART,
        "Cart",
        {
            "show_count": {"kind": "boolean", "default": True, "label": "Show Count"},
            "show_total": {"kind": "boolean", "default": False, "label": "Show Total"},
        },
    ),
    TypeTag.SEARCH: _builtin(
        TypeTag.SEARCH,
        "Search",
        {
            "search_style": {
                "kind": "select",
                "options": [
                    {"value": "icon", "label": "Icon"},
                    {"value": "expandable", "label": "Expandable"},
                    {"value": "inline", "label": "Inline"},
                ],
                "default": "icon",
                "label": "Style",
            },
            "placeholder": _text("Search...", "Placeholder"),
        },
    ),
    TypeTag.DYNAMIC_AI: _builtin(
        TypeTag.DYNAMIC_AI,
        "AI Component",
        {
            "title": _text(label="Title"),
            "content": {"kind": "richText", "default": "", "label": "Content"},
        },
    ),
    TypeTag.PAGE_COMPONENT: TagHandler(
        TypeTag.PAGE_COMPONENT, "Page Component", needs_definition=True
    ),
    TypeTag.COMPONENT: TagHandler(
        TypeTag.COMPONENT, "Component (legacy)", needs_definition=True
    ),
}


def handler_for(tag: TypeTag) -> TagHandler:
    """Handler of a tag. Every tag has one."""
    return TAG_HANDLERS[tag]

"""Built-in component catalog.

Entries use the stored shape (``schema: {"properties": {...}}`` with legacy
``type`` names) so seeding exercises the same parsing path as loading
definitions saved by older editors.
"""

import logging
from typing import Any

from .lib import ComponentDefinition, DefinitionRegistry

logger = logging.getLogger(__name__)

_ALIGNMENT_OPTIONS = [
    {"value": "left", "label": "Left"},
    {"value": "center", "label": "Center"},
    {"value": "right", "label": "Right"},
]


def _alignment(default: str = "left") -> dict[str, Any]:
    return {
        "type": "select",
        "label": "Alignment",
        "options": _ALIGNMENT_OPTIONS,
        "default": default,
    }


SYSTEM_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "Heading",
        "slug": "heading",
        "description": "Heading component with customizable level and text.",
        "category": "text",
        "icon": "heading",
        "schema": {
            "properties": {
                "level": {
                    "type": "select",
                    "label": "Heading Level",
                    "options": [
                        {"value": f"h{n}", "label": f"H{n}"} for n in range(1, 7)
                    ],
                    "default": "h2",
                },
                "text": {"type": "text", "label": "Text", "default": "Heading"},
                "alignment": _alignment(),
            }
        },
        "template": "<{{level}} style=\"text-align: {{alignment}}\">{{text}}</{{level}}>",
    },
    {
        "name": "Text",
        "slug": "text",
        "description": "Simple text component with rich text editor.",
        "category": "text",
        "icon": "text",
        "schema": {
            "properties": {
                "content": {
                    "type": "rich-text",
                    "label": "Content",
                    "default": "<p>Enter your text here</p>",
                },
            }
        },
        "template": "<div class=\"text-component\">{{{content}}}</div>",
    },
    {
        "name": "Image",
        "slug": "image",
        "description": "Image component with alt text and caption.",
        "category": "media",
        "icon": "image",
        "schema": {
            "properties": {
                "src": {"type": "media", "label": "Image", "default": ""},
                "alt": {"type": "text", "label": "Alt Text", "default": ""},
                "caption": {"type": "text", "label": "Caption", "default": ""},
                "alignment": _alignment("center"),
            }
        },
        "template": "<figure style=\"text-align: {{alignment}}\"><img src=\"{{src}}\" alt=\"{{alt}}\"><figcaption>{{caption}}</figcaption></figure>",
    },
    {
        "name": "Button",
        "slug": "button",
        "description": "Button component with customizable text, link, and style.",
        "category": "interactive",
        "icon": "button",
        "schema": {
            "properties": {
                "text": {"type": "text", "label": "Button Text", "default": "Click Me"},
                "link": {"type": "text", "label": "Button Link", "default": "#"},
                "style": {
                    "type": "select",
                    "label": "Button Style",
                    "options": [
                        "primary",
                        "secondary",
                        "success",
                        "danger",
                        "warning",
                        "info",
                        "light",
                        "dark",
                        "link",
                    ],
                    "default": "primary",
                },
                "size": {
                    "type": "select",
                    "label": "Button Size",
                    "options": [
                        {"value": "sm", "label": "Small"},
                        {"value": "md", "label": "Medium"},
                        {"value": "lg", "label": "Large"},
                    ],
                    "default": "md",
                },
                "alignment": _alignment(),
                "target": {
                    "type": "select",
                    "label": "Open Link In",
                    "options": [
                        {"value": "_self", "label": "Same Window"},
                        {"value": "_blank", "label": "New Window"},
                    ],
                    "default": "_self",
                },
            }
        },
        "template": "<a href=\"{{link}}\" target=\"{{target}}\" class=\"btn btn-{{style}} btn-{{size}}\">{{text}}</a>",
    },
    {
        "name": "Form",
        "slug": "form",
        "description": "Form component to display and process forms.",
        "category": "interactive",
        "icon": "form",
        "schema": {
            "properties": {
                "form_id": {"type": "form-select", "label": "Select Form", "default": ""},
                "title": {"type": "text", "label": "Form Title", "default": ""},
                "description": {
                    "type": "textarea",
                    "label": "Form Description",
                    "default": "",
                },
                "submit_button_text": {
                    "type": "text",
                    "label": "Submit Button Text",
                    "default": "Submit",
                },
            }
        },
        "template": "<div class=\"form-component\" data-form-id=\"{{form_id}}\"></div>",
    },
    {
        "name": "Pricing Table",
        "slug": "pricing",
        "description": "Side-by-side pricing plans with feature lists.",
        "category": "marketing",
        "icon": "tag",
        "schema": {
            "properties": {
                "title": {"type": "text", "label": "Title", "default": "Pricing"},
                "plans": {
                    "type": "array",
                    "label": "Plans",
                    "template": {
                        "name": "Plan",
                        "price": 0,
                        "period": "month",
                        "features": "",
                        "highlighted": False,
                        "button_text": "Get started",
                    },
                    "default": [
                        {
                            "name": "Basic",
                            "price": 9,
                            "period": "month",
                            "features": "1 site\nEmail support",
                            "highlighted": False,
                            "button_text": "Get started",
                        },
                        {
                            "name": "Pro",
                            "price": 29,
                            "period": "month",
                            "features": "10 sites\nPriority support",
                            "highlighted": True,
                            "button_text": "Go Pro",
                        },
                    ],
                },
            }
        },
        "template": "{{#each plans}}<div class=\"plan\">{{name}} {{price}}/{{period}}</div>{{/each}}",
    },
    {
        "name": "Team",
        "slug": "team",
        "description": "Grid of team member cards.",
        "category": "marketing",
        "icon": "users",
        "schema": {
            "properties": {
                "title": {"type": "text", "label": "Title", "default": "Our Team"},
                "columns": {
                    "type": "select",
                    "label": "Columns",
                    "options": [2, 3, 4],
                    "default": 3,
                },
                "members": {
                    "type": "array",
                    "label": "Members",
                    "template": {"name": "Name", "role": "", "photo": "", "bio": ""},
                    "default": [],
                },
            }
        },
        "template": "{{#each members}}<div class=\"member\">{{name}}</div>{{/each}}",
    },
    {
        "name": "Testimonials",
        "slug": "testimonials",
        "description": "Customer quotes with author and rating.",
        "category": "marketing",
        "icon": "quote",
        "schema": {
            "properties": {
                "title": {"type": "text", "label": "Title", "default": "What people say"},
                "show_rating": {"type": "checkbox", "label": "Show Rating", "default": True},
                "items": {
                    "type": "array",
                    "label": "Testimonials",
                    "template": {"quote": "", "author": "", "role": "", "rating": 5},
                    "default": [],
                },
            }
        },
        "template": "{{#each items}}<blockquote>{{quote}}</blockquote>{{/each}}",
    },
]


def seed_system_definitions(registry: DefinitionRegistry) -> list[ComponentDefinition]:
    """Register the built-in catalog, skipping slugs already present.

    Returns:
        Definitions registered by this call.
    """
    added: list[ComponentDefinition] = []
    for entry in SYSTEM_DEFINITIONS:
        if registry.find(entry["slug"]) is not None:
            continue
        definition = ComponentDefinition.from_dict(
            {**entry, "is_system": True, "is_active": True}
        )
        added.append(registry.register(definition))
    if added:
        logger.info(f"Seeded {len(added)} system definitions")
    return added

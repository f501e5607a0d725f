"""Localized message templates."""

from __future__ import annotations

from .renderer import (
    PLACEHOLDER_PATTERN,
    RenderedTemplate,
    render_named_template,
    render_template,
    render_text,
)
from .seeds import load_builtin_templates, seed_templates

__all__ = [
    "PLACEHOLDER_PATTERN",
    "RenderedTemplate",
    "load_builtin_templates",
    "render_named_template",
    "render_template",
    "render_text",
    "seed_templates",
]

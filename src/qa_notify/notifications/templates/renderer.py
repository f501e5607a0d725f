"""Placeholder substitution and locale selection for templates."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from qa_notify.notifications.exceptions import TemplateInactiveError, TemplateRenderError
from qa_notify.notifications.models import NotificationTemplate
from qa_notify.notifications.models.records import FALLBACK_LOCALE
from qa_notify.repositories.protocols import NotificationRepository

PLACEHOLDER_PATTERN: Final[re.Pattern[str]] = re.compile(r"\{\{(.+?)\}\}")


@dataclass(slots=True, frozen=True)
class RenderedTemplate:
    """Localized, substituted template content."""

    subject: str
    message: str
    html: str | None
    locale: str


def render_text(text: str, variables: Mapping[str, object]) -> str:
    """Replace every ``{{key}}`` whose key is in ``variables``.

    Unknown placeholders are left untouched and substituted values are not
    scanned again.

    Examples:
        >>> render_text("Hi {{name}}, {{name}}!", {"name": "Ada"})
        'Hi Ada, Ada!'
        >>> render_text("Hi {{name}}", {})
        'Hi {{name}}'
    """

    def substitute(match: re.Match[str]) -> str:
        key = match.group(1).strip()
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, text)


def render_template(
    template: NotificationTemplate,
    locale: str,
    variables: Mapping[str, object],
) -> RenderedTemplate:
    """Render a template for one locale, falling back to English.

    Args:
        template: Stored template
        locale: Requested locale
        variables: Placeholder values

    Returns:
        Rendered subject, message and optional HTML

    Raises:
        TemplateInactiveError: If the template is disabled
        TemplateRenderError: If the template has no message for the locale or the fallback
    """
    if not template.is_active:
        raise TemplateInactiveError(template.name)

    message = template.localized("message", locale)
    if message is None:
        raise TemplateRenderError(
            f"Template '{template.name}' has no message for locale '{locale}' or '{FALLBACK_LOCALE}'",
            context={"template": template.name, "locale": locale},
        )

    resolved_locale = locale if locale in template.message else FALLBACK_LOCALE
    subject = template.localized("subject", locale) or ""
    html = template.localized("html", locale)

    return RenderedTemplate(
        subject=render_text(subject, variables),
        message=render_text(message, variables),
        html=render_text(html, variables) if html is not None else None,
        locale=resolved_locale,
    )


async def render_named_template(
    repository: NotificationRepository,
    name: str,
    locale: str,
    variables: Mapping[str, object],
) -> tuple[NotificationTemplate, RenderedTemplate]:
    """Load a template by name and render it.

    Raises:
        TemplateNotFoundError: If no template has ``name``
        TemplateInactiveError: If the template is disabled
        TemplateRenderError: If no usable locale exists
    """
    template = await repository.get_template_by_name(name)
    return template, render_template(template, locale, variables)

"""Built-in templates shipped with the package."""

from __future__ import annotations

import logging
from importlib import resources

import yaml
from pydantic import ValidationError

from qa_notify.notifications.exceptions import TemplateError
from qa_notify.notifications.models import NotificationTemplate
from qa_notify.repositories.protocols import NotificationRepository

logger = logging.getLogger(__name__)

BUILTIN_TEMPLATES_RESOURCE = "builtin.yaml"


def load_builtin_templates() -> list[NotificationTemplate]:
    """Parse the packaged template seeds.

    Raises:
        TemplateError: If the packaged file is malformed
    """
    source = resources.files("qa_notify.notifications.templates").joinpath(BUILTIN_TEMPLATES_RESOURCE)
    try:
        raw: object = yaml.safe_load(source.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise TemplateError(
            "Built-in templates are not valid YAML",
            context={"resource": BUILTIN_TEMPLATES_RESOURCE, "error": str(exc)},
        ) from exc

    if not isinstance(raw, list):
        raise TemplateError(
            "Built-in templates must be a list",
            context={"resource": BUILTIN_TEMPLATES_RESOURCE, "type": type(raw).__name__},
        )

    try:
        return [NotificationTemplate.model_validate(entry) for entry in raw]  # pyright: ignore[reportUnknownVariableType]
    except ValidationError as exc:
        raise TemplateError(
            "Built-in template failed validation",
            context={"resource": BUILTIN_TEMPLATES_RESOURCE, "errors": exc.errors(include_url=False)},
        ) from exc


async def seed_templates(repository: NotificationRepository) -> int:
    """Create the built-in templates that the repository does not have yet.

    Returns:
        Number of templates created
    """
    existing = {template.name for template in await repository.list_templates()}
    created = 0
    for template in load_builtin_templates():
        if template.name in existing:
            continue
        _ = await repository.create_template(template)
        created += 1
    logger.info("Seeded %d built-in template(s)", created)
    return created

"""Error types for configuration loading and validation."""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from pydantic import ValidationError

logger = logging.getLogger(__name__)

ENV_HINT = "QA_NOTIFY_<SECTION>__<FIELD> or one of the RABBITMQ_*/SMTP_*/TWILIO_* variables"


class ConfigError(Exception):
    """Base exception for all configuration-related errors.

    Subclasses that name a single offending source (a file, a variable, a
    dotted config path) set ``source_key``; the value is mirrored into
    ``context`` so it shows up when the error is logged.
    """

    source_key: ClassVar[str | None] = None

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny] # arbitrary diagnostic values
        *,
        source: str | None = None,
    ) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = dict(context or {})  # pyright: ignore[reportExplicitAny] # arbitrary diagnostic values
        self.source: str | None = source
        if source and self.source_key is not None:
            self.context[self.source_key] = source


class ConfigLoadError(ConfigError):
    """A configuration file is missing, unreadable or not valid YAML."""

    source_key: ClassVar[str | None] = "file_path"

    def __init__(self, message: str, file_path: str | None = None, context: dict[str, Any] | None = None) -> None:  # pyright: ignore[reportExplicitAny]
        super().__init__(message, context, source=file_path)

    @property
    def file_path(self) -> str | None:
        return self.source


class EnvLoadError(ConfigError):
    """An environment variable holds a value that cannot be converted."""

    source_key: ClassVar[str | None] = "env_var"

    def __init__(self, message: str, env_var: str | None = None, context: dict[str, Any] | None = None) -> None:  # pyright: ignore[reportExplicitAny]
        super().__init__(message, context, source=env_var)

    @property
    def env_var(self) -> str | None:
        return self.source


class ConfigMergeError(ConfigError):
    """Two sources disagree on whether a config path is a section or a value."""

    source_key: ClassVar[str | None] = "config_path"

    def __init__(self, message: str, config_path: str = "", context: dict[str, Any] | None = None) -> None:  # pyright: ignore[reportExplicitAny]
        super().__init__(message, context, source=config_path or None)

    @property
    def config_path(self) -> str:
        return self.source or ""


class ConfigValidationError(ConfigError):
    """The merged configuration does not satisfy ``AppConfig``."""

    def __init__(
        self,
        message: str,
        pydantic_error: ValidationError | None = None,
        context: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> None:
        super().__init__(message, context)
        self.pydantic_error: ValidationError | None = pydantic_error
        if pydantic_error is not None:
            self.context["validation_errors"] = [
                {"field": _dotted(err["loc"]), "message": err["msg"], "type": err["type"]}
                for err in pydantic_error.errors()
            ]


def _dotted(location: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in location)


def handle_config_error(error: Exception, operation: str) -> ConfigError:
    """Normalize an exception raised while configuring into a ConfigError.

    Args:
        error: The caught exception
        operation: What was being done, e.g. ``"startup"``

    Returns:
        ``error`` itself when it is already a ConfigError, otherwise a new
        ConfigError chained to it.
    """
    logger.debug("Configuration error during %s: %s", operation, error, exc_info=True)

    if isinstance(error, ConfigError):
        return error

    wrapped: ConfigError
    if isinstance(error, ValidationError):
        wrapped = ConfigValidationError(f"Configuration validation failed during {operation}", pydantic_error=error)
    else:
        wrapped = ConfigError(
            f"Configuration error during {operation}: {error}",
            context={"operation": operation, "error_type": type(error).__name__},
        )
    wrapped.__cause__ = error
    return wrapped


def log_config_error(error: ConfigError, level: int = logging.WARNING) -> None:
    """Log a configuration error with its context appended."""
    if not error.context:
        logger.log(level, "%s", error)
        return
    details = ", ".join(f"{key}={value}" for key, value in error.context.items())  # pyright: ignore[reportAny]
    logger.log(level, "%s (context: %s)", error, details)


def suggest_config_fix(error: ConfigError) -> str | None:
    """Return a one-line hint for the CLI, or None when there is nothing useful to say."""
    if isinstance(error, ConfigLoadError):
        if error.file_path:
            return f"Pass --config with a readable YAML file, or fix the syntax in {error.file_path}"
        return "Pass --config with a readable YAML file"

    if isinstance(error, EnvLoadError):
        if error.env_var:
            return f"Unset or correct {error.env_var}; values for list and dict fields must be JSON"
        return f"Check environment overrides ({ENV_HINT})"

    if isinstance(error, ConfigValidationError) and error.pydantic_error is not None:
        errors = error.pydantic_error.errors()
        if len(errors) == 1:
            return f"Fix '{_dotted(errors[0]['loc'])}': {errors[0]['msg']}"
        return f"Fix the {len(errors)} invalid fields listed above"

    if isinstance(error, ConfigMergeError):
        if error.config_path:
            return f"'{error.config_path}' is a section in one source and a plain value in another; make them agree"
        return "Make the YAML file and environment overrides agree on section shapes"

    return None

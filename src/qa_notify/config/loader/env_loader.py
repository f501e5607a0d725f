"""Environment variable configuration loader."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import Final, cast

from ..exceptions import EnvLoadError


# Variable names used by existing deployments, mapped onto config paths.
LEGACY_ENV_MAPPINGS: Final[dict[str, str]] = {
    "RABBITMQ_HOST": "broker.host",
    "RABBITMQ_PORT": "broker.port",
    "RABBITMQ_USER": "broker.username",
    "RABBITMQ_PASS": "broker.password",
    "RABBITMQ_VHOST": "broker.vhost",
    "SMTP_HOST": "smtp.host",
    "SMTP_PORT": "smtp.port",
    "SMTP_USER": "smtp.user",
    "SMTP_APP_PASS": "smtp.password",
    "TWILIO_ACCOUNT_SID": "sms.account_sid",
    "TWILIO_AUTH_TOKEN": "sms.auth_token",
    "TWILIO_PHONE_NUMBER": "sms.from_number",
}


class EnvLoader:
    """Builds a nested config dict from environment variables.

    ``QA_NOTIFY_BROKER__HOST=rabbit`` becomes ``{"broker": {"host": "rabbit"}}``;
    the double underscore separates nesting levels so field names may keep
    single underscores. Values starting with ``[`` or ``{`` are parsed as JSON,
    everything else is left as a string for model validation to coerce.
    """

    def __init__(
        self,
        prefix: str = "QA_NOTIFY_",
        mappings: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize EnvLoader.

        Args:
            prefix: Prefix for environment variables to load
            mappings: Explicit variable name to config path mappings
            environ: Environment to read instead of os.environ
        """
        self.prefix: str = prefix
        self.mappings: dict[str, str] = dict(LEGACY_ENV_MAPPINGS if mappings is None else mappings)
        self._environ: Mapping[str, str] | None = environ

    def load(self) -> dict[str, object]:
        """Load configuration from environment variables.

        Prefixed variables win over mapped legacy names for the same path.

        Returns:
            Nested configuration dictionary

        Raises:
            EnvLoadError: If a JSON-looking value cannot be parsed
        """
        environ = self._environ if self._environ is not None else os.environ
        config: dict[str, object] = {}

        for env_var, config_path in self.mappings.items():
            if env_var in environ:
                self._set_nested_value(config, config_path, self._convert_value(environ[env_var], env_var))

        for env_var, raw_value in environ.items():
            if not env_var.startswith(self.prefix):
                continue
            config_key = env_var[len(self.prefix):]
            if not config_key:
                continue
            config_path = config_key.lower().replace("__", ".")
            self._set_nested_value(config, config_path, self._convert_value(raw_value, env_var))

        return config

    def _convert_value(self, value: str, env_var: str) -> object:
        """Parse JSON lists and objects; leave scalars untouched.

        Raises:
            EnvLoadError: If JSON parsing fails
        """
        if value.startswith(("[", "{")):
            try:
                return cast(object, json.loads(value))
            except json.JSONDecodeError as e:
                raise EnvLoadError(f"Failed to parse JSON for {env_var}: {e}", env_var) from e
        return value

    def _set_nested_value(self, config: dict[str, object], path: str, value: object) -> None:
        """Set a value in a nested dictionary using dot notation."""
        keys = path.split(".")
        current: dict[str, object] = config
        for key in keys[:-1]:
            child = current.get(key)
            if not isinstance(child, dict):
                child = {}
                current[key] = child
            current = child  # pyright: ignore[reportUnknownVariableType] # dict after isinstance check
        current[keys[-1]] = value

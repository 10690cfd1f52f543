"""
Runner configuration for eventsift.

Settings are read once at startup from a YAML file. The sifter tree
itself is Python code: the CLI imports it from a "module:attribute"
reference, where the attribute is either a Sifter or a zero-argument
factory returning one.

Example settings.yaml:
    log_level: info
    json_logs: true
    on_error: reject
"""

import importlib
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from eventsift.errors import ConfigError
from eventsift.schema import REJECT_PREFIX_ERROR, build_reject_message
from eventsift.sifters.base import Sifter

DEFAULT_ERROR_MSG = build_reject_message(
    REJECT_PREFIX_ERROR, "event sifter failed to process input"
)

_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class OnError(str, Enum):
    """What the runner answers when the sifter tree raises."""

    REJECT = "reject"
    SHADOW_REJECT = "shadow_reject"
    ACCEPT = "accept"


class RunnerSettings(BaseModel):
    """
    Settings of the stdin/stdout runner.

    Attributes:
        log_level: Minimum level of log lines written to stderr
        json_logs: Render logs as JSON instead of key=value text
        on_error: Decision emitted when evaluating a request fails
        error_msg: Rejection message used when on_error is "reject"
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    log_level: str = Field(default="info", description="Log level")
    json_logs: bool = Field(default=False, description="Render logs as JSON")
    on_error: OnError = Field(
        default=OnError.REJECT,
        description="Decision emitted when the sifter raises",
    )
    error_msg: str = Field(
        default=DEFAULT_ERROR_MSG,
        description="Rejection message for failed evaluations",
        min_length=1,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard level names, case-insensitively."""
        level = v.lower()
        if level not in _LOG_LEVELS:
            msg = f"Invalid log level: {v} (expected one of {', '.join(_LOG_LEVELS)})"
            raise ValueError(msg)
        return level


def load_settings_from_string(content: str) -> RunnerSettings:
    """Load runner settings from a YAML string. Empty content gives defaults."""
    try:
        data = yaml.safe_load(content) or {}
        return RunnerSettings.model_validate(data)
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigError(message=f"Invalid runner settings: {e}", source="<string>") from e


def load_settings(path: Path | str) -> RunnerSettings:
    """
    Load runner settings from a YAML file.

    Raises:
        ConfigError: If the file can't be read or doesn't match the schema
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
        return RunnerSettings.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise ConfigError(message=f"Invalid runner settings: {e}", source=str(path)) from e


def resolve_sifter(ref: str) -> Sifter:
    """
    Import a sifter from a "package.module:attribute" reference.

    The attribute may be a Sifter instance or a callable taking no
    arguments and returning one.

    Raises:
        ConfigError: If the reference is malformed or doesn't yield a Sifter
    """
    module_name, sep, attr_path = ref.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(
            message=f"Invalid sifter reference: {ref!r}",
            source=ref,
            suggestion='Use the form "package.module:attribute"',
        )

    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(message=f"Cannot import module {module_name!r}: {e}", source=ref) from e

    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise ConfigError(
                message=f"Module {module_name!r} has no attribute {attr_path!r}",
                source=ref,
            ) from e

    if not isinstance(obj, Sifter) and callable(obj):
        obj = obj()

    if not isinstance(obj, Sifter):
        raise ConfigError(
            message=f"{ref!r} is not a Sifter (got {type(obj).__name__})",
            source=ref,
        )
    return obj

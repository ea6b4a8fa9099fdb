"""Settings for typed sessions and their stores.

SessionSettings is a frozen pydantic model. load_settings() layers a YAML
file and SESSIONKIT_* environment variables over its defaults through
Dynaconf.
"""

from pathlib import Path
from typing import Literal

from dynaconf import Dynaconf
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "SESSIONKIT"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class SessionSettings(BaseModel):
    """Settings shared by typed sessions and their stores.

    Flash values live next to real values in the same record, under a
    shadow key built as ``<flash_prefix><name><flash_suffix>``.

    Example YAML:
        flash_prefix: "__flash_"
        flash_suffix: "__"
        log_level: INFO
        json_logs: false
    """

    model_config = {"frozen": True}

    flash_prefix: str = Field(
        default="__flash_",
        description="Prefix of the shadow key holding a flashed value",
    )
    flash_suffix: str = Field(
        default="__",
        description="Suffix of the shadow key holding a flashed value",
    )
    log_level: LogLevel = Field(
        default="INFO",
        description="Root log level passed to configure_logging()",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output",
    )

    @field_validator("flash_prefix")
    @classmethod
    def validate_flash_prefix(cls, v: str) -> str:
        """An empty prefix would let a flash key collide with a real key."""
        if not v:
            raise ValueError("flash_prefix must not be empty")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.upper()
        return v

    def flash_key(self, name: str) -> str:
        return f"{self.flash_prefix}{name}{self.flash_suffix}"


DEFAULT_SETTINGS = SessionSettings()


def load_settings(config_path: Path | None = None) -> SessionSettings:
    """Build settings from defaults, an optional YAML file and the environment.

    Later sources win: field defaults, then ``config_path``, then
    ``SESSIONKIT_<FIELD>`` environment variables. Keys that are not
    settings fields are ignored.

    Raises:
        FileNotFoundError: If ``config_path`` is given but is not a file
        pydantic.ValidationError: If a loaded value is invalid
    """
    if config_path is not None and not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    source = Dynaconf(
        envvar_prefix=ENV_PREFIX,
        settings_files=[] if config_path is None else [str(config_path)],
        environments=False,
        load_dotenv=False,
    )

    # Dynaconf upper-cases keys and adds its own loader options to as_dict()
    loaded = {key.lower(): value for key, value in source.as_dict().items()}
    return SessionSettings(**{name: loaded[name] for name in SessionSettings.model_fields if name in loaded})

"""
Settings for the query service

Values come from defaults, then ``UI_QUERY_*`` environment variables, then
explicit overrides (CLI flags).
"""
from typing import Literal, Mapping, Optional
import logging
import os

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "UI_QUERY_"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class QuerySettings(BaseModel):
    """
    Attributes:
        strict_keys: reject selector keys that name no known attribute
        log_level: root logging level
        host: address the HTTP service binds to
        port: port the HTTP service listens on
    """
    strict_keys: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value):
        return value.upper() if isinstance(value, str) else value


def load_settings(env: Optional[Mapping[str, str]] = None, **overrides) -> QuerySettings:
    """
    Build settings from the environment plus overrides.

    Args:
        env: mapping to read ``UI_QUERY_*`` keys from; ``os.environ`` by default
        overrides: field values that win over the environment; None is ignored
    """
    env = os.environ if env is None else env
    values = {}
    for name in QuerySettings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in env:
            values[name] = env[key]
    values.update({name: value for name, value in overrides.items() if value is not None})
    return QuerySettings(**values)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)

"""
Configuration management for Einlass

Queue options come from, in increasing precedence: built-in defaults, a
YAML file, ``EINLASS_*`` environment variables, and explicit keyword
overrides.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .core.admission import parse_size
from .core.errors import ConfigurationError
from .core.scheduler import DEFAULT_THREADS

logger = logging.getLogger(__name__)

ENV_PREFIX = "EINLASS_"

# Environment variable -> QueueConfig field
ENV_FIELDS = {
    "THREADS": "threads",
    "AUTO_PENDING": "auto_pending",
    "QUEUE_CAPACITY": "queue_capacity",
    "ACCEPT": "accept",
    "SIZE_LIMIT": "size_limit",
    "PREVENT_DUPLICATE": "prevent_duplicate",
    "MULTIPLE": "multiple",
    "LOG_LEVEL": "log_level",
}


class ExtensionGroup(BaseModel):
    """A titled group of accepted extensions, e.g. Images: jpg,png"""
    title: str = ""
    extensions: List[str] = Field(default_factory=list)

    @field_validator("extensions", mode="before")
    @classmethod
    def split_extensions(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [ext.strip() for ext in value if ext and ext.strip()]


class QueueConfig(BaseModel):
    """Options recognised by a Context"""

    threads: int = DEFAULT_THREADS
    auto_pending: bool = False
    queue_capacity: int = 0
    accept: List[ExtensionGroup] = Field(default_factory=list)
    size_limit: Optional[Union[int, str]] = None
    prevent_duplicate: bool = False
    multiple: bool = True

    # Opaque per-request options handed to the transport untouched
    request: Dict[str, Any] = Field(default_factory=dict)

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator("threads")
    @classmethod
    def check_threads(cls, value):
        if value < 1:
            raise ValueError("threads must be positive")
        return value

    @field_validator("queue_capacity", mode="before")
    @classmethod
    def check_capacity(cls, value):
        if value is None:
            return 0
        if int(value) < 0:
            raise ValueError("queue_capacity must be non-negative")
        return value

    @field_validator("accept", mode="before")
    @classmethod
    def normalize_accept(cls, value):
        """Accept "jpg,png", ["jpg", "png"] or a list of group dicts"""
        if not value:
            return []
        if isinstance(value, str):
            return [{"extensions": value}]
        if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
            return [{"extensions": list(value)}]
        return value

    @field_validator("size_limit", mode="before")
    @classmethod
    def check_size_limit(cls, value):
        # Malformed limits are rejected here, never at admission time
        if value is None or value == "":
            return None
        parse_size(value)
        return value

    @property
    def size_limit_bytes(self) -> Optional[int]:
        return parse_size(self.size_limit)

    @property
    def extension_groups(self) -> List[List[str]]:
        return [group.extensions for group in self.accept]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


def load_yaml_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML config file; the queue options may sit under ``queue:``"""
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must be a mapping")
    return data.get("queue", data)


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect ``EINLASS_*`` variables as raw option values"""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for suffix, field in ENV_FIELDS.items():
        value = environ.get(ENV_PREFIX + suffix)
        if value is None:
            continue
        if field in ("auto_pending", "prevent_duplicate", "multiple"):
            overrides[field] = value.lower() in ("true", "1", "yes")
        else:
            overrides[field] = value
    return overrides


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Dict[str, str]] = None,
                **overrides) -> QueueConfig:
    """Build a QueueConfig from file, environment and keyword overrides"""
    data: Dict[str, Any] = {}
    if path:
        data.update(load_yaml_config(path))
    data.update(env_overrides(environ))
    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        config = QueueConfig(**data)
    except ValueError as e:
        raise ConfigurationError(f"Invalid queue configuration: {e}")

    logger.debug(f"Loaded queue configuration: {config.to_dict()}")
    return config


def setup_logging(config: QueueConfig):
    """Setup logging based on configuration"""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=config.log_format
    )

    if config.log_level.upper() == 'DEBUG':
        logging.getLogger('einlass').setLevel(logging.DEBUG)

"""Repository configuration helpers (.cogit/config.yaml)."""

from typing import Optional

import yaml
from pydantic import ValidationError

from .constants import COGIT_VERSION
from .context import RepositoryContext
from .core import RepositoryConfig
from .errors import IoFailure, SerializationError
from .utils import atomic_write_text

DEFAULT_DESCRIPTION = "cogit repository"


def default_config(description: Optional[str] = None) -> RepositoryConfig:
    """Build the configuration written by init."""
    return RepositoryConfig(
        version=COGIT_VERSION,
        description=description or DEFAULT_DESCRIPTION,
    )


def load_config(ctx: RepositoryContext) -> RepositoryConfig:
    """Load repository configuration.

    A missing config file is not an error for older repositories; the
    defaults are returned instead.

    Raises:
        SerializationError: If the file is not valid YAML or fails validation
    """
    if not ctx.config_path.exists():
        return default_config()

    try:
        with ctx.config_path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise SerializationError("config", str(exc)) from exc
    except OSError as exc:
        raise IoFailure("Failed to read config", ctx.config_path) from exc

    if not isinstance(data, dict):
        raise SerializationError("config", "top level must be a mapping")

    try:
        return RepositoryConfig(**data)
    except ValidationError as exc:
        raise SerializationError("config", str(exc)) from exc


def save_config(config: RepositoryConfig, ctx: RepositoryContext) -> None:
    """Save repository configuration atomically."""
    data = config.model_dump(mode="json")
    text = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    try:
        atomic_write_text(ctx.config_path, text)
    except OSError as exc:
        raise IoFailure("Failed to write config", ctx.config_path) from exc

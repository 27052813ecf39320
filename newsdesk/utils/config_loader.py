"""YAML configuration loading.

`config/pipeline.yaml` holds the pipeline settings and `config/feeds.yaml` the
feed seed list. Both are validated by their pydantic models; a few settings
can be overridden from the environment so deployments do not need a custom
YAML file.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from newsdesk.models.config import FeedsConfig, PipelineConfig
from newsdesk.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

# Environment variable -> (section, key) in pipeline.yaml
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "NEWSDESK_DATABASE_URL": ("store", "database_url"),
    "NEWSDESK_LOG_LEVEL": ("logging", "level"),
    "NEWSDESK_LLM_PROVIDER": ("trending", "provider"),
    "NEWSDESK_LLM_MODEL": ("trending", "llm_model"),
}


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping. An empty file reads as an empty mapping."""
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")
    return data


def load_yaml_config(file_path: Path | str, model_class: type[T]) -> T:
    """
    Load a YAML file and validate it against `model_class`.

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the YAML is malformed
        ValidationError: If the content does not match the model

    Examples:
        >>> config = load_yaml_config("config/feeds.yaml", FeedsConfig)
    """
    path = Path(file_path)
    if not path.exists():
        logger.error("Configuration file not found", path=str(path))
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        config = model_class.model_validate(read_yaml(path))
    except yaml.YAMLError as e:
        logger.error("Invalid YAML syntax", path=str(path), error=str(e))
        raise
    except ValidationError as e:
        logger.error("Configuration validation failed", path=str(path), error=str(e))
        raise

    logger.debug("Configuration loaded", path=str(path), model=model_class.__name__)
    return config


def apply_env_overrides(raw: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Copy of `raw` with the values of set ENV_OVERRIDES variables merged in."""
    merged = {
        section: dict(values) if isinstance(values, dict) else values
        for section, values in raw.items()
    }
    for name, (section, key) in ENV_OVERRIDES.items():
        value = env.get(name)
        if value:
            merged.setdefault(section, {})[key] = value
            logger.debug("Config value overridden from environment", variable=name)
    return merged


def load_feeds_config(file_path: Path | str = "config/feeds.yaml") -> FeedsConfig:
    return load_yaml_config(file_path, FeedsConfig)


def load_pipeline_config(
    file_path: Path | str = "config/pipeline.yaml",
    env: Mapping[str, str] | None = None,
) -> PipelineConfig:
    """
    Load the pipeline configuration.

    A missing file is not an error: defaults apply, plus environment overrides.

    Args:
        file_path: Path to pipeline.yaml
        env: Environment for overrides (os.environ by default)

    Returns:
        PipelineConfig instance
    """
    env = os.environ if env is None else env
    path = Path(file_path)

    if path.exists():
        raw = read_yaml(path)
    else:
        logger.warning("Config file not found, using defaults", path=str(path))
        raw = {}

    try:
        config = PipelineConfig.model_validate(apply_env_overrides(raw, env))
    except ValidationError as e:
        logger.error("Configuration validation failed", path=str(path), error=str(e))
        raise

    logger.info("Pipeline configuration loaded", path=str(path), mode=config.pipeline.execution_mode)
    return config

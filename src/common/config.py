"""
Configuration loading from ``config.yaml``.

Sections used by the analytics core:
- logging: level, format, file
- centrality: eigenvector_method
- clustering: resolution, seed
- layout: LayoutOptions fields
- analysis: max_workers
"""

import logging
import os
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

CONFIG_PATH = "config.yaml"


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    A missing file yields an empty config so every section falls back to
    its defaults; a file whose top level is not a mapping raises ValueError.
    """
    if not os.path.exists(path):
        logger.debug("Config file %s not found, using defaults", path)
        return {}
    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(config).__name__}")
    return config


def get_section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a config section as a dict (empty when absent or null)."""
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(section).__name__}")
    return section

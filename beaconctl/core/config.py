"""YAML configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError

from beaconctl.core.distance import PATH_LOSS_EXPONENT, REFERENCE_RSSI_AT_1M
from beaconctl.core.errors import ConfigError
from beaconctl.core.presence import DEFAULT_TIMEOUT_INTERVAL
from beaconctl.schemas import load_validator

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class Settings:
    timeout_interval: float = DEFAULT_TIMEOUT_INTERVAL
    notifications_enabled: bool = False
    reference_rssi: float = REFERENCE_RSSI_AT_1M
    path_loss_exponent: float = PATH_LOSS_EXPONENT
    auto_start: bool = True
    adapter: str | None = None


def config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "beaconctl/config.yaml"


def load_settings(path: Path | None = None) -> Settings:
    """Read settings from YAML, falling back to defaults when the file is absent."""
    path = path or config_path()
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        LOGGER.debug("No config at %s, using defaults", path)
        return Settings()
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    try:
        doc = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if doc is None:
        return Settings()
    if not isinstance(doc, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at root")

    try:
        load_validator("config.schema.json").validate(doc)
    except ValidationError as exc:
        key = ".".join(str(p) for p in exc.path)
        where = f" ({key})" if key else ""
        raise ConfigError(f"Schema validation failed for {path}{where}: {exc.message}") from exc

    defaults = Settings()
    return Settings(
        timeout_interval=float(doc.get("timeout_interval", defaults.timeout_interval)),
        notifications_enabled=doc.get("notifications_enabled", defaults.notifications_enabled),
        reference_rssi=float(doc.get("reference_rssi", defaults.reference_rssi)),
        path_loss_exponent=float(doc.get("path_loss_exponent", defaults.path_loss_exponent)),
        auto_start=doc.get("auto_start", defaults.auto_start),
        adapter=doc.get("adapter", defaults.adapter),
    )

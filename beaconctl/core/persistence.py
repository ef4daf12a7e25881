"""Favorites persistence on top of a small key-value store."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from jsonschema import ValidationError

from beaconctl.core.errors import LoadError, PersistError
from beaconctl.core.model import FavoriteDevice
from beaconctl.schemas import load_validator

FAVORITES_KEY = "FavoriteDevices"
LOGGER = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when the key was never written."""

    def set(self, key: str, value: bytes) -> None:
        """Durably replace the value stored under key."""


class MemoryStore:
    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = value


class FileStore:
    """One file per key inside a directory, replaced atomically on write."""

    def __init__(self, directory: Path | None = None) -> None:
        self.directory = directory or default_data_dir()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> bytes | None:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_bytes(value)
        os.replace(tmp, path)


def default_data_dir() -> Path:
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_data / "beaconctl"


def _encode(favorite: FavoriteDevice) -> dict[str, Any]:
    return {
        "id": favorite.id,
        "originalName": favorite.original_name,
        "customName": favorite.custom_name,
        "dateAdded": favorite.date_added.isoformat(),
        "batteryLevel": favorite.battery_level,
    }


def _decode(record: dict[str, Any]) -> FavoriteDevice:
    date_added = datetime.fromisoformat(record["dateAdded"])
    if date_added.tzinfo is None:
        # Naive timestamps are read as UTC.
        date_added = date_added.replace(tzinfo=timezone.utc)
    return FavoriteDevice(
        id=record["id"],
        original_name=record["originalName"],
        custom_name=record.get("customName"),
        date_added=date_added,
        battery_level=int(record["batteryLevel"]),
    )


class FavoritesGateway:
    def __init__(self, store: KeyValueStore, *, key: str = FAVORITES_KEY) -> None:
        self.store = store
        self.key = key

    def save(self, favorites: Iterable[FavoriteDevice]) -> None:
        payload = json.dumps([_encode(f) for f in favorites], indent=2).encode("utf-8")
        try:
            self.store.set(self.key, payload)
        except OSError as exc:
            raise PersistError(f"Could not write favorites: {exc}") from exc

    def load(self) -> list[FavoriteDevice]:
        """Return stored favorites; missing or corrupt data yields an empty list."""
        try:
            raw = self.store.get(self.key)
        except OSError as exc:
            raise LoadError(f"Could not read favorites: {exc}") from exc
        if raw is None:
            return []

        try:
            doc = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unparseable favorites data: %s", exc)
            return []

        try:
            load_validator("favorites.schema.json").validate(doc)
            return [_decode(record) for record in doc]
        except ValidationError as exc:
            path = ".".join(str(p) for p in exc.path)
            where = f" ({path})" if path else ""
            LOGGER.warning("Ignoring invalid favorites data%s: %s", where, exc.message)
            return []
        except ValueError as exc:
            LOGGER.warning("Ignoring invalid favorites data: %s", exc)
            return []

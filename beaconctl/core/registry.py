"""Discovered and favorite device records with change notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum

from beaconctl.core.errors import AlreadyFavoriteError, NotFoundError
from beaconctl.core.model import BATTERY_UNKNOWN, DiscoveredDevice, FavoriteDevice

LOGGER = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    OBSERVED = "observed"
    CLEARED = "cleared"
    FAVORITE_ADDED = "favorite_added"
    FAVORITE_REMOVED = "favorite_removed"
    FAVORITE_RENAMED = "favorite_renamed"
    BATTERY_UPDATED = "battery_updated"
    HARDWARE_ID = "hardware_id"
    FAVORITES_LOADED = "favorites_loaded"

    @property
    def touches_favorites(self) -> bool:
        return self in _FAVORITE_CHANGES


_FAVORITE_CHANGES = frozenset(
    {
        ChangeKind.FAVORITE_ADDED,
        ChangeKind.FAVORITE_REMOVED,
        ChangeKind.FAVORITE_RENAMED,
        ChangeKind.BATTERY_UPDATED,
    }
)


@dataclass(frozen=True)
class RegistryChange:
    kind: ChangeKind
    device_id: str | None = None


Listener = Callable[[RegistryChange], None]


class DeviceRegistry:
    """Single-writer store for discovered peripherals and favorites.

    All mutations must run on the owner's event loop. Queries return the
    live records; callers must not mutate them.
    """

    def __init__(self) -> None:
        self._discovered: dict[str, DiscoveredDevice] = {}
        self._favorites: dict[str, FavoriteDevice] = {}
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, kind: ChangeKind, device_id: str | None = None) -> None:
        change = RegistryChange(kind=kind, device_id=device_id)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                LOGGER.exception("Registry listener failed on %s", change)

    # Discovered devices

    def record_observation(
        self,
        device_id: str,
        rssi: int,
        timestamp: float,
        name: str | None = None,
    ) -> bool:
        """Insert or update a discovered device; return True if it was new."""
        device = self._discovered.get(device_id)
        if device is None:
            self._discovered[device_id] = DiscoveredDevice(
                id=device_id,
                rssi=rssi,
                last_seen=timestamp,
                name=name,
            )
            self._notify(ChangeKind.OBSERVED, device_id)
            return True

        device.rssi = rssi
        device.last_seen = max(device.last_seen, timestamp)
        if name is not None:
            device.name = name
        self._notify(ChangeKind.OBSERVED, device_id)
        return False

    def set_hardware_id(self, device_id: str, hardware_id: str) -> None:
        device = self._discovered.get(device_id)
        if device is None or device.hardware_id == hardware_id:
            return
        device.hardware_id = hardware_id
        self._notify(ChangeKind.HARDWARE_ID, device_id)

    def clear_discovered(self) -> None:
        self._discovered.clear()
        self._notify(ChangeKind.CLEARED)

    def discovered(self, device_id: str) -> DiscoveredDevice | None:
        return self._discovered.get(device_id)

    def discovered_devices(self) -> list[DiscoveredDevice]:
        return list(self._discovered.values())

    # Favorites

    def is_favorite(self, device_id: str) -> bool:
        return device_id in self._favorites

    def favorite(self, device_id: str) -> FavoriteDevice | None:
        return self._favorites.get(device_id)

    def favorites(self) -> list[FavoriteDevice]:
        return list(self._favorites.values())

    def add_favorite(self, device_id: str, name: str) -> FavoriteDevice:
        if device_id in self._favorites:
            raise AlreadyFavoriteError(f"Device '{device_id}' is already a favorite")
        favorite = FavoriteDevice(id=device_id, original_name=name)
        self._favorites[device_id] = favorite
        LOGGER.debug("Added favorite %s (%s)", device_id, name)
        self._notify(ChangeKind.FAVORITE_ADDED, device_id)
        return favorite

    def remove_favorite(self, device_id: str) -> None:
        if self._favorites.pop(device_id, None) is None:
            return
        LOGGER.debug("Removed favorite %s", device_id)
        self._notify(ChangeKind.FAVORITE_REMOVED, device_id)

    def toggle_favorite(self, device_id: str, name: str) -> bool:
        """Pin or unpin a device; return True if it is a favorite afterwards."""
        if self.is_favorite(device_id):
            self.remove_favorite(device_id)
            return False
        self.add_favorite(device_id, name)
        return True

    def rename_favorite(self, device_id: str, new_name: str) -> None:
        favorite = self._favorites.get(device_id)
        if favorite is None:
            raise NotFoundError(f"No favorite with id '{device_id}'")
        if favorite.display_name == new_name:
            return
        self._favorites[device_id] = replace(favorite, custom_name=new_name)
        self._notify(ChangeKind.FAVORITE_RENAMED, device_id)

    def update_battery(self, device_id: str, level: int) -> None:
        favorite = self._favorites.get(device_id)
        if favorite is None:
            # Unpinned between the read request and its response.
            return
        level = max(0, min(100, level)) if level != BATTERY_UNKNOWN else level
        if favorite.battery_level == level:
            return
        favorite.battery_level = level
        self._notify(ChangeKind.BATTERY_UPDATED, device_id)

    def replace_favorites(self, favorites: Iterable[FavoriteDevice]) -> None:
        loaded: dict[str, FavoriteDevice] = {}
        for favorite in favorites:
            if favorite.id in loaded:
                LOGGER.warning("Skipping duplicate stored favorite %s", favorite.id)
                continue
            loaded[favorite.id] = favorite
        self._favorites = loaded
        self._notify(ChangeKind.FAVORITES_LOADED)

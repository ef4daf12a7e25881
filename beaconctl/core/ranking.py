"""Sorted views over favorites."""

from __future__ import annotations

from enum import Enum

from beaconctl.core.distance import distance
from beaconctl.core.model import FavoriteDevice
from beaconctl.core.registry import DeviceRegistry


class SortOption(str, Enum):
    NAME = "name"
    DATE_ADDED = "date"
    SIGNAL_STRENGTH = "signal"
    DISTANCE = "distance"
    CONNECTION_STATUS = "connection"

    @property
    def needs_observations(self) -> bool:
        return self in (
            SortOption.SIGNAL_STRENGTH,
            SortOption.DISTANCE,
            SortOption.CONNECTION_STATUS,
        )


def _rssi(registry: DeviceRegistry, favorite: FavoriteDevice) -> int | None:
    discovered = registry.discovered(favorite.id)
    return discovered.rssi if discovered is not None else None


def _name_key(favorite: FavoriteDevice) -> str:
    return favorite.display_name.casefold()


def sort_favorites(
    registry: DeviceRegistry,
    option: SortOption = SortOption.NAME,
    *,
    connected_id: str | None = None,
) -> list[FavoriteDevice]:
    """Return favorites ordered for display.

    Favorites that were never observed go last for signal and distance
    ordering, keeping their relative order.
    """
    favorites = registry.favorites()
    if option is SortOption.NAME:
        return sorted(favorites, key=_name_key)
    if option is SortOption.DATE_ADDED:
        return sorted(favorites, key=lambda f: f.date_added, reverse=True)
    if option is SortOption.SIGNAL_STRENGTH:

        def _signal_key(favorite: FavoriteDevice) -> tuple[bool, int]:
            rssi = _rssi(registry, favorite)
            return (rssi is None, 0 if rssi is None else -rssi)

        return sorted(favorites, key=_signal_key)
    if option is SortOption.DISTANCE:

        def _distance_key(favorite: FavoriteDevice) -> tuple[bool, float]:
            rssi = _rssi(registry, favorite)
            return (rssi is None, 0.0 if rssi is None else distance(rssi))

        return sorted(favorites, key=_distance_key)
    return sorted(favorites, key=lambda f: (f.id != connected_id, _name_key(f)))

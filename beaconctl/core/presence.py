"""Presence evaluation for favorite devices."""

from __future__ import annotations

from beaconctl.core.model import (
    FavoriteDevice,
    FavoritePresence,
    PresenceReport,
    PresenceStatus,
)
from beaconctl.core.registry import DeviceRegistry

DEFAULT_TIMEOUT_INTERVAL = 4.0


def favorite_status(
    registry: DeviceRegistry,
    favorite: FavoriteDevice,
    *,
    now: float,
    timeout_interval: float = DEFAULT_TIMEOUT_INTERVAL,
    connected_id: str | None = None,
    scanning: bool = True,
) -> PresenceStatus:
    if not scanning:
        return PresenceStatus.OUT_OF_RANGE
    if connected_id is not None and favorite.id == connected_id:
        return PresenceStatus.CONNECTED
    discovered = registry.discovered(favorite.id)
    if discovered is not None and now - discovered.last_seen <= timeout_interval:
        return PresenceStatus.IN_RANGE
    return PresenceStatus.OUT_OF_RANGE


def evaluate(
    registry: DeviceRegistry,
    *,
    now: float,
    timeout_interval: float = DEFAULT_TIMEOUT_INTERVAL,
    connected_id: str | None = None,
    scanning: bool = True,
) -> PresenceReport:
    """Compute per-favorite and aggregate presence without touching the registry.

    When scanning is stopped every favorite is out of range, regardless of
    how recent its last observation is.
    """
    entries: list[FavoritePresence] = []
    for favorite in registry.favorites():
        status = favorite_status(
            registry,
            favorite,
            now=now,
            timeout_interval=timeout_interval,
            connected_id=connected_id,
            scanning=scanning,
        )
        discovered = registry.discovered(favorite.id)
        entries.append(
            FavoritePresence(
                favorite=favorite,
                status=status,
                rssi=discovered.rssi if discovered is not None else None,
            )
        )
    active = sum(1 for entry in entries if entry.status.is_active)
    return PresenceReport(entries=tuple(entries), active_count=active, total_count=len(entries))

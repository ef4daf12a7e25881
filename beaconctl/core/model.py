"""Core data models shared by the registry, presence evaluation, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

BATTERY_UNKNOWN = -1


class RadioState(str, Enum):
    READY = "ready"
    OFF = "off"
    UNAUTHORIZED = "unauthorized"
    UNSUPPORTED = "unsupported"
    RESETTING = "resetting"
    UNKNOWN = "unknown"

    @property
    def description(self) -> str:
        return _RADIO_STATE_TEXT.get(self, "Bluetooth is not available")


_RADIO_STATE_TEXT = {
    RadioState.READY: "Bluetooth is ready",
    RadioState.OFF: "Bluetooth is turned off",
    RadioState.UNAUTHORIZED: "Bluetooth permission denied",
    RadioState.UNSUPPORTED: "Bluetooth is not supported",
    RadioState.RESETTING: "Bluetooth is resetting",
}


class PresenceStatus(str, Enum):
    CONNECTED = "connected"
    IN_RANGE = "in_range"
    OUT_OF_RANGE = "out_of_range"

    @property
    def is_active(self) -> bool:
        return self is not PresenceStatus.OUT_OF_RANGE


@dataclass
class DiscoveredDevice:
    """Latest observation of a peripheral, updated in place by the registry."""

    id: str
    rssi: int
    last_seen: float
    name: str | None = None
    hardware_id: str | None = None


@dataclass
class FavoriteDevice:
    """A device pinned by the user for presence tracking."""

    id: str
    original_name: str
    date_added: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    custom_name: str | None = None
    battery_level: int = BATTERY_UNKNOWN

    @property
    def display_name(self) -> str:
        return self.custom_name if self.custom_name is not None else self.original_name

    @property
    def battery_known(self) -> bool:
        return self.battery_level != BATTERY_UNKNOWN


@dataclass(frozen=True)
class FavoritePresence:
    favorite: FavoriteDevice
    status: PresenceStatus
    rssi: int | None = None


@dataclass(frozen=True)
class PresenceReport:
    entries: tuple[FavoritePresence, ...]
    active_count: int
    total_count: int

    @property
    def all_present(self) -> bool:
        return self.total_count > 0 and self.active_count == self.total_count

    def status_of(self, device_id: str) -> PresenceStatus | None:
        for entry in self.entries:
            if entry.favorite.id == device_id:
                return entry.status
        return None

"""Stable public API for building tooling on top of beaconctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from beaconctl.adapters.base import (
    ConnectResultEvent,
    DisconnectedEvent,
    DiscoveryEvent,
    EventChannel,
    InfoKind,
    RadioAdapter,
    RadioStateEvent,
    SecondaryInfoEvent,
)
from beaconctl.core.alerts import AlertEvent, AlertKind, AlertStateMachine
from beaconctl.core.config import Settings, load_settings
from beaconctl.core.distance import SignalQuality, distance, signal_quality
from beaconctl.core.errors import (
    AlreadyFavoriteError,
    BeaconctlError,
    ConfigError,
    LoadError,
    NotFoundError,
    PersistError,
    RadioNotReadyError,
    StorageError,
)
from beaconctl.core.model import (
    BATTERY_UNKNOWN,
    DiscoveredDevice,
    FavoriteDevice,
    PresenceReport,
    PresenceStatus,
    RadioState,
)
from beaconctl.core.monitor import Monitor
from beaconctl.core.notify import Notifier, PulseKind
from beaconctl.core.persistence import FavoritesGateway, FileStore, KeyValueStore, MemoryStore
from beaconctl.core.ranking import SortOption, sort_favorites
from beaconctl.core.registry import DeviceRegistry

__all__ = [
    "BeaconctlError",
    "AlreadyFavoriteError",
    "NotFoundError",
    "RadioNotReadyError",
    "ConfigError",
    "StorageError",
    "PersistError",
    "LoadError",
    "BATTERY_UNKNOWN",
    "DiscoveredDevice",
    "FavoriteDevice",
    "PresenceReport",
    "PresenceStatus",
    "RadioState",
    "AlertEvent",
    "AlertKind",
    "AlertStateMachine",
    "PulseKind",
    "Notifier",
    "RadioAdapter",
    "EventChannel",
    "DiscoveryEvent",
    "ConnectResultEvent",
    "SecondaryInfoEvent",
    "DisconnectedEvent",
    "RadioStateEvent",
    "InfoKind",
    "Settings",
    "SignalQuality",
    "SortOption",
    "KeyValueStore",
    "FileStore",
    "MemoryStore",
    "Monitor",
    "distance",
    "signal_quality",
    "Client",
]


class Client:
    """Public client for favorites management and monitor construction.

    A `Client` loads the stored favorites once and writes the whole list back
    after every change, so it can back short-lived tools (CLI commands,
    scripts) as well as seed a long-running `Monitor`.
    """

    def __init__(
        self,
        *,
        store: KeyValueStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._gateway = FavoritesGateway(store or FileStore())
        self._registry = DeviceRegistry()
        self._registry.replace_favorites(self._gateway.load())

    def list_favorites(self, sort: SortOption = SortOption.NAME) -> list[FavoriteDevice]:
        if sort.needs_observations:
            raise BeaconctlError(f"Sorting by {sort.value} needs live observations; use it with watch")
        return sort_favorites(self._registry, sort)

    def add_favorite(self, device_id: str, name: str) -> FavoriteDevice:
        favorite = self._registry.add_favorite(device_id, name)
        self._save()
        return favorite

    def remove_favorite(self, device_id: str) -> None:
        if not self._registry.is_favorite(device_id):
            return
        self._registry.remove_favorite(device_id)
        self._save()

    def rename_favorite(self, device_id: str, new_name: str) -> None:
        current = self._registry.favorite(device_id)
        unchanged = current is not None and current.display_name == new_name
        self._registry.rename_favorite(device_id, new_name)
        if not unchanged:
            self._save()

    def get_favorite(self, device_id: str) -> FavoriteDevice | None:
        return self._registry.favorite(device_id)

    def distance(self, rssi: int) -> float:
        return distance(
            rssi,
            reference_rssi=self.settings.reference_rssi,
            path_loss_exponent=self.settings.path_loss_exponent,
        )

    def monitor(
        self,
        adapter: RadioAdapter,
        notifier: Notifier,
        *,
        channel: EventChannel | None = None,
    ) -> Monitor:
        return Monitor(
            adapter,
            notifier,
            channel=channel,
            settings=self.settings,
            gateway=self._gateway,
        )

    def _save(self) -> None:
        self._gateway.save(self._registry.favorites())

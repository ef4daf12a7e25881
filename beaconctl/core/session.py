"""Scan session lifecycle and connection bookkeeping driven by adapter events."""

from __future__ import annotations

import logging
from enum import Enum

from beaconctl.adapters.base import (
    AdapterEvent,
    ConnectResultEvent,
    DisconnectedEvent,
    DiscoveryEvent,
    EventChannel,
    InfoKind,
    RadioAdapter,
    RadioStateEvent,
    SecondaryInfoEvent,
)
from beaconctl.core.errors import RadioNotReadyError
from beaconctl.core.model import RadioState
from beaconctl.core.registry import DeviceRegistry

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    STOPPED = "stopped"
    SCANNING = "scanning"


class ScanSession:
    def __init__(
        self,
        adapter: RadioAdapter,
        registry: DeviceRegistry,
        *,
        auto_start: bool = True,
    ) -> None:
        self.adapter = adapter
        self.registry = registry
        self.auto_start = auto_start
        self.state = SessionState.STOPPED
        self.manually_stopped = False
        self.selected_id: str | None = None
        self.selected_rssi: int | None = None
        self._selected_connected = False
        self._connecting: set[str] = set()

    @property
    def scanning(self) -> bool:
        return self.state is SessionState.SCANNING

    @property
    def connected_id(self) -> str | None:
        return self.selected_id if self._selected_connected else None

    @property
    def connecting(self) -> frozenset[str]:
        return frozenset(self._connecting)

    def start(self) -> None:
        radio_state = self.adapter.current_state()
        if radio_state is not RadioState.READY:
            raise RadioNotReadyError(f"Cannot start scanning: {radio_state.description}")
        self.state = SessionState.SCANNING
        self.manually_stopped = False
        self.adapter.start_scan()
        LOGGER.info("Scanning started")

    def stop(self) -> None:
        self.state = SessionState.STOPPED
        self.manually_stopped = True
        self.adapter.stop_scan()
        LOGGER.info("Scanning stopped")

    def clear_discovered(self) -> None:
        self.registry.clear_discovered()

    def select(self, device_id: str) -> None:
        if self.selected_id == device_id:
            return
        if self.selected_id is not None:
            self.deselect()
        self.selected_id = device_id
        self._selected_connected = False
        discovered = self.registry.discovered(device_id)
        self.selected_rssi = discovered.rssi if discovered is not None else None
        self.adapter.connect(device_id)

    def deselect(self) -> None:
        if self.selected_id is None:
            return
        device_id = self.selected_id
        self._clear_selection()
        self.adapter.disconnect(device_id)

    def _clear_selection(self) -> None:
        self.selected_id = None
        self.selected_rssi = None
        self._selected_connected = False

    # Event handling

    def handle(self, event: AdapterEvent) -> None:
        if isinstance(event, DiscoveryEvent):
            self._on_discovery(event)
        elif isinstance(event, SecondaryInfoEvent):
            self._on_secondary_info(event)
        elif isinstance(event, ConnectResultEvent):
            self._on_connect_result(event)
        elif isinstance(event, DisconnectedEvent):
            self._on_disconnected(event)
        elif isinstance(event, RadioStateEvent):
            self._on_radio_state(event)
        else:
            LOGGER.warning("Ignoring unknown adapter event %r", event)

    async def consume(self, channel: EventChannel) -> None:
        while True:
            event = await channel.get()
            try:
                self.handle(event)
            except Exception:
                LOGGER.exception("Failed to handle adapter event %r", event)
            finally:
                channel.task_done()

    def _on_discovery(self, event: DiscoveryEvent) -> None:
        if not self.scanning:
            return
        is_new = self.registry.record_observation(
            event.device_id,
            event.rssi,
            timestamp=event.timestamp,
            name=event.name,
        )
        if event.device_id == self.selected_id:
            self.selected_rssi = event.rssi
        if is_new and event.device_id not in self._connecting:
            self._connecting.add(event.device_id)
            self.adapter.connect(event.device_id)

    def _on_secondary_info(self, event: SecondaryInfoEvent) -> None:
        if event.kind is InfoKind.HARDWARE_ID:
            self.registry.set_hardware_id(event.device_id, str(event.value))
            LOGGER.debug("Hardware id for %s: %s", event.device_id, event.value)
            if event.device_id != self.selected_id:
                self.adapter.disconnect(event.device_id)
        elif event.kind is InfoKind.BATTERY_LEVEL:
            self.registry.update_battery(event.device_id, int(event.value))

    def _on_connect_result(self, event: ConnectResultEvent) -> None:
        if event.success:
            LOGGER.debug("Connected to %s", event.device_id)
            if event.device_id == self.selected_id:
                self._selected_connected = True
            return
        LOGGER.warning("Connect to %s failed: %s", event.device_id, event.error or "unknown error")
        self._connecting.discard(event.device_id)
        if event.device_id == self.selected_id:
            self._clear_selection()

    def _on_disconnected(self, event: DisconnectedEvent) -> None:
        if event.error:
            LOGGER.warning("Disconnected from %s with error: %s", event.device_id, event.error)
        else:
            LOGGER.debug("Disconnected from %s", event.device_id)
        self._connecting.discard(event.device_id)
        if event.device_id == self.selected_id:
            self._clear_selection()

    def _on_radio_state(self, event: RadioStateEvent) -> None:
        LOGGER.info("%s", event.state.description)
        if event.state is not RadioState.READY or self.manually_stopped:
            return
        if self.scanning or self.auto_start:
            self.start()

"""Radio adapter backed by bleak scanning and GATT reads."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from beaconctl.adapters.base import (
    ConnectResultEvent,
    DisconnectedEvent,
    DiscoveryEvent,
    EventChannel,
    InfoKind,
    RadioStateEvent,
    SecondaryInfoEvent,
)
from beaconctl.core.model import RadioState

LOGGER = logging.getLogger(__name__)

SYSTEM_ID_CHAR_UUID = "00002a23-0000-1000-8000-00805f9b34fb"
BATTERY_LEVEL_CHAR_UUID = "00002a19-0000-1000-8000-00805f9b34fb"


def format_system_id(data: bytes | bytearray) -> str:
    """Render a System ID characteristic value as a MAC-like string."""
    return ":".join(f"{byte:02X}" for byte in reversed(bytes(data)))


def parse_battery_level(data: bytes | bytearray) -> int | None:
    return data[0] if data else None


class BleakRadioAdapter:
    def __init__(
        self,
        channel: EventChannel,
        *,
        adapter: str | None = None,
        connect_timeout_s: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.channel = channel
        self.adapter = adapter
        self.connect_timeout_s = connect_timeout_s
        self.clock = clock
        self._state = RadioState.UNKNOWN
        self._scanner: BleakScanner | None = None
        self._clients: dict[str, BleakClient] = {}
        self._pending: dict[str, asyncio.Task[None]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def current_state(self) -> RadioState:
        return self._state

    def _set_state(self, state: RadioState) -> None:
        if state is self._state:
            return
        self._state = state
        self.channel.post(RadioStateEvent(state=state))

    async def open(self) -> None:
        scanner_kwargs: dict[str, Any] = {"detection_callback": self._on_detection}
        if self.adapter:
            scanner_kwargs["adapter"] = self.adapter
        try:
            self._scanner = BleakScanner(**scanner_kwargs)
        except BleakError as exc:
            LOGGER.error("Bluetooth unavailable: %s", exc)
            self._set_state(RadioState.UNSUPPORTED)
            return
        self._set_state(RadioState.READY)

    async def close(self) -> None:
        for device_id in [*self._pending, *self._clients]:
            self.disconnect(device_id)
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None], what: str) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)

        def _done(finished: asyncio.Task[None]) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is not None:
                LOGGER.warning("%s failed: %s", what, exc)

        task.add_done_callback(_done)
        return task

    def _on_detection(self, device: BLEDevice, advertisement: AdvertisementData) -> None:
        self.channel.post(
            DiscoveryEvent(
                device_id=device.address,
                rssi=advertisement.rssi,
                timestamp=self.clock(),
                name=advertisement.local_name or device.name,
            )
        )

    # Scanning

    def start_scan(self) -> None:
        self._spawn(self._start_scan(), "start scan")

    async def _start_scan(self) -> None:
        if self._scanner is None:
            return
        try:
            await self._scanner.start()
        except BleakError as exc:
            LOGGER.error("Could not start scanning: %s", exc)
            self._set_state(RadioState.OFF)

    def stop_scan(self) -> None:
        if self._scanner is not None:
            self._spawn(self._scanner.stop(), "stop scan")

    # Connections

    def connect(self, device_id: str) -> None:
        if device_id in self._clients or device_id in self._pending:
            return
        self._pending[device_id] = self._spawn(self._connect(device_id), f"connect {device_id}")

    async def _connect(self, device_id: str) -> None:
        client = BleakClient(
            device_id,
            disconnected_callback=lambda _: self._on_disconnected(device_id),
            timeout=self.connect_timeout_s,
        )
        try:
            await client.connect()
        except asyncio.CancelledError:
            # Disconnect requested before the link came up.
            await client.disconnect()
            raise
        except (BleakError, asyncio.TimeoutError, OSError) as exc:
            self.channel.post(ConnectResultEvent(device_id=device_id, success=False, error=str(exc)))
            return
        finally:
            self._pending.pop(device_id, None)

        self._clients[device_id] = client
        self.channel.post(ConnectResultEvent(device_id=device_id, success=True))
        await self._read_battery(device_id, client)
        await self._read_system_id(device_id, client)

    async def _read_system_id(self, device_id: str, client: BleakClient) -> None:
        try:
            data = await client.read_gatt_char(SYSTEM_ID_CHAR_UUID)
        except BleakError as exc:
            LOGGER.debug("No System ID for %s: %s", device_id, exc)
            return
        self.channel.post(
            SecondaryInfoEvent(
                device_id=device_id,
                kind=InfoKind.HARDWARE_ID,
                value=format_system_id(data),
            )
        )

    async def _read_battery(self, device_id: str, client: BleakClient) -> None:
        def _notify_handler(_: Any, data: bytearray) -> None:
            self._post_battery(device_id, data)

        try:
            self._post_battery(device_id, await client.read_gatt_char(BATTERY_LEVEL_CHAR_UUID))
            await client.start_notify(BATTERY_LEVEL_CHAR_UUID, _notify_handler)
        except BleakError as exc:
            LOGGER.debug("No battery level for %s: %s", device_id, exc)

    def _post_battery(self, device_id: str, data: bytes | bytearray) -> None:
        level = parse_battery_level(data)
        if level is None:
            return
        self.channel.post(
            SecondaryInfoEvent(device_id=device_id, kind=InfoKind.BATTERY_LEVEL, value=level)
        )

    def disconnect(self, device_id: str) -> None:
        pending = self._pending.pop(device_id, None)
        if pending is not None:
            pending.cancel()
            self.channel.post(DisconnectedEvent(device_id=device_id))
            return
        client = self._clients.pop(device_id, None)
        if client is not None:
            self._spawn(client.disconnect(), f"disconnect {device_id}")

    def _on_disconnected(self, device_id: str) -> None:
        self._clients.pop(device_id, None)
        self.channel.post(DisconnectedEvent(device_id=device_id))

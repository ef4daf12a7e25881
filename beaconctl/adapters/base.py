"""Radio adapter interface and the typed events adapters post."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from beaconctl.core.model import RadioState


class InfoKind(str, Enum):
    HARDWARE_ID = "hardware_id"
    BATTERY_LEVEL = "battery_level"


@dataclass(frozen=True)
class DiscoveryEvent:
    device_id: str
    rssi: int
    timestamp: float
    name: str | None = None


@dataclass(frozen=True)
class ConnectResultEvent:
    device_id: str
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class SecondaryInfoEvent:
    device_id: str
    kind: InfoKind
    value: str | int


@dataclass(frozen=True)
class DisconnectedEvent:
    device_id: str
    error: str | None = None


@dataclass(frozen=True)
class RadioStateEvent:
    state: RadioState


AdapterEvent = Union[
    DiscoveryEvent,
    ConnectResultEvent,
    SecondaryInfoEvent,
    DisconnectedEvent,
    RadioStateEvent,
]


class RadioAdapter(Protocol):
    """Commands are fire-and-forget; results arrive as events on the channel."""

    def current_state(self) -> RadioState:
        ...

    def start_scan(self) -> None:
        ...

    def stop_scan(self) -> None:
        ...

    def connect(self, device_id: str) -> None:
        ...

    def disconnect(self, device_id: str) -> None:
        ...


class EventChannel:
    """Queue of adapter events consumed on the owner's event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._queue: asyncio.Queue[AdapterEvent] = asyncio.Queue()
        self._loop = loop

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def post(self, event: AdapterEvent) -> None:
        """Enqueue from code already running on the owner loop."""
        self._queue.put_nowait(event)

    def post_threadsafe(self, event: AdapterEvent) -> None:
        """Enqueue from a driver callback thread."""
        if self._loop is None:
            raise RuntimeError("EventChannel is not bound to an event loop")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def get(self) -> AdapterEvent:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every posted event has been handled."""
        await self._queue.join()

"""Owner context that wires the registry, scan session, presence and alerts."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable

from beaconctl.adapters.base import EventChannel, RadioAdapter
from beaconctl.core.alerts import AlertDispatcher, AlertEvent, AlertStateMachine
from beaconctl.core.config import Settings
from beaconctl.core.errors import LoadError, PersistError
from beaconctl.core.model import PresenceReport
from beaconctl.core.notify import Notifier
from beaconctl.core.persistence import FavoritesGateway, MemoryStore
from beaconctl.core.presence import evaluate
from beaconctl.core.registry import ChangeKind, DeviceRegistry, RegistryChange
from beaconctl.core.session import ScanSession

LOGGER = logging.getLogger(__name__)

TICK_INTERVAL_S = 1.0


class Monitor:
    """Runs presence evaluation and adapter event handling on one event loop.

    Favorites are written through the gateway after every favorites change.
    A failed write leaves the monitor dirty and is retried on the next
    change and on shutdown.
    """

    def __init__(
        self,
        adapter: RadioAdapter,
        notifier: Notifier,
        *,
        channel: EventChannel | None = None,
        settings: Settings | None = None,
        gateway: FavoritesGateway | None = None,
        registry: DeviceRegistry | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or Settings()
        self.channel = channel or EventChannel()
        self.registry = registry or DeviceRegistry()
        self.gateway = gateway or FavoritesGateway(MemoryStore())
        self.session = ScanSession(adapter, self.registry, auto_start=self.settings.auto_start)
        self.alerts = AlertStateMachine()
        self.dispatcher = AlertDispatcher(
            notifier,
            notifications_enabled=self.settings.notifications_enabled,
        )
        self.clock = clock
        self.dirty = False
        self.last_report: PresenceReport | None = None

        self._load_favorites()
        self._unsubscribe = self.registry.subscribe(self._on_registry_change)

    def _load_favorites(self) -> None:
        try:
            favorites = self.gateway.load()
        except LoadError as exc:
            LOGGER.warning("%s; starting with no favorites", exc)
            return
        self.registry.replace_favorites(favorites)
        LOGGER.debug("Loaded %d favorites", len(favorites))

    def _on_registry_change(self, change: RegistryChange) -> None:
        if change.kind is ChangeKind.CLEARED:
            self.alerts.reset()
        elif change.kind.touches_favorites:
            self.dirty = True
            self.flush()

    def flush(self) -> bool:
        """Write favorites if they changed since the last successful save."""
        if not self.dirty:
            return True
        try:
            self.gateway.save(self.registry.favorites())
        except PersistError as exc:
            LOGGER.warning("%s; will retry on next change", exc)
            return False
        self.dirty = False
        return True

    def report(self, now: float | None = None) -> PresenceReport:
        return evaluate(
            self.registry,
            now=self.clock() if now is None else now,
            timeout_interval=self.settings.timeout_interval,
            connected_id=self.session.connected_id,
            scanning=self.session.scanning,
        )

    def tick(self, now: float | None = None) -> AlertEvent | None:
        report = self.report(now)
        self.last_report = report
        event = self.alerts.step(report)
        if event is not None:
            self.dispatcher.dispatch(event)
        return event

    async def run(
        self,
        *,
        duration: float | None = None,
        on_tick: Callable[[PresenceReport], None] | None = None,
    ) -> None:
        loop = asyncio.get_running_loop()
        self.channel.bind(loop)
        consumer = asyncio.create_task(self.session.consume(self.channel))
        deadline = None if duration is None else loop.time() + duration
        try:
            while deadline is None or loop.time() < deadline:
                self.tick()
                if on_tick is not None and self.last_report is not None:
                    on_tick(self.last_report)
                delay = TICK_INTERVAL_S
                if deadline is not None:
                    delay = max(0.0, min(delay, deadline - loop.time()))
                await asyncio.sleep(delay)
        finally:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
            if self.session.scanning:
                self.session.stop()
            self.flush()

    def close(self) -> None:
        self._unsubscribe()
        self.flush()

"""Edge-triggered alerting on aggregate favorite presence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from beaconctl.core.model import PresenceReport
from beaconctl.core.notify import Notifier, PulseKind

LOGGER = logging.getLogger(__name__)

ALERT_TITLE = "Bluetooth Devices Status"


class AlertState(str, Enum):
    UNKNOWN = "unknown"
    ALL_PRESENT = "all_present"
    NOT_ALL_PRESENT = "not_all_present"


class AlertKind(str, Enum):
    ALL_PRESENT_NOW = "all_present_now"
    SOME_MISSING_NOW = "some_missing_now"

    @property
    def pulse(self) -> PulseKind:
        return PulseKind.SINGLE if self is AlertKind.ALL_PRESENT_NOW else PulseKind.DOUBLE


@dataclass(frozen=True)
class AlertEvent:
    kind: AlertKind
    active_count: int
    total_count: int

    @property
    def body(self) -> str:
        return f"Active devices: {self.active_count} of {self.total_count}"


class AlertStateMachine:
    """Emits one event per transition of the aggregate presence.

    The first evaluation only records a baseline so that start-up never
    alerts.
    """

    def __init__(self) -> None:
        self.state = AlertState.UNKNOWN

    def reset(self) -> None:
        self.state = AlertState.UNKNOWN

    def step(self, report: PresenceReport) -> AlertEvent | None:
        current = AlertState.ALL_PRESENT if report.all_present else AlertState.NOT_ALL_PRESENT
        previous = self.state
        self.state = current

        if previous is AlertState.UNKNOWN or previous is current:
            return None
        if current is AlertState.ALL_PRESENT:
            return AlertEvent(
                kind=AlertKind.ALL_PRESENT_NOW,
                active_count=report.total_count,
                total_count=report.total_count,
            )
        return AlertEvent(
            kind=AlertKind.SOME_MISSING_NOW,
            active_count=report.active_count,
            total_count=report.total_count,
        )


class AlertDispatcher:
    def __init__(self, notifier: Notifier, *, notifications_enabled: bool = False) -> None:
        self.notifier = notifier
        self.notifications_enabled = notifications_enabled

    def dispatch(self, event: AlertEvent) -> None:
        LOGGER.info("%s (%s)", event.kind.value, event.body)
        try:
            self.notifier.pulse(event.kind.pulse)
        except Exception:
            LOGGER.exception("Notifier pulse failed")
        if not self.notifications_enabled:
            return
        try:
            self.notifier.alert(ALERT_TITLE, event.body)
        except Exception:
            LOGGER.exception("Notifier alert failed")

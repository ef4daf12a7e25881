from __future__ import annotations

from beaconctl.core.alerts import (
    ALERT_TITLE,
    AlertDispatcher,
    AlertEvent,
    AlertKind,
    AlertState,
    AlertStateMachine,
)
from beaconctl.core.model import FavoriteDevice, FavoritePresence, PresenceReport, PresenceStatus
from beaconctl.core.notify import PulseKind


def _report(*statuses: PresenceStatus) -> PresenceReport:
    entries = tuple(
        FavoritePresence(favorite=FavoriteDevice(id=f"dev-{i}", original_name=f"D{i}"), status=s)
        for i, s in enumerate(statuses)
    )
    active = sum(1 for s in statuses if s.is_active)
    return PresenceReport(entries=entries, active_count=active, total_count=len(statuses))


ALL = _report(PresenceStatus.IN_RANGE, PresenceStatus.CONNECTED, PresenceStatus.IN_RANGE)
SOME = _report(PresenceStatus.IN_RANGE, PresenceStatus.OUT_OF_RANGE, PresenceStatus.IN_RANGE)


class FakeNotifier:
    def __init__(self) -> None:
        self.pulses: list[PulseKind] = []
        self.alerts: list[tuple[str, str]] = []

    def pulse(self, kind: PulseKind) -> None:
        self.pulses.append(kind)

    def alert(self, title: str, body: str) -> None:
        self.alerts.append((title, body))


def test_first_step_only_records_baseline() -> None:
    machine = AlertStateMachine()
    assert machine.step(ALL) is None
    assert machine.state is AlertState.ALL_PRESENT


def test_all_present_emitted_once() -> None:
    machine = AlertStateMachine()
    machine.step(SOME)

    events = [machine.step(ALL) for _ in range(5)]

    assert events[0] == AlertEvent(AlertKind.ALL_PRESENT_NOW, active_count=3, total_count=3)
    assert events[1:] == [None] * 4


def test_some_missing_carries_active_count() -> None:
    machine = AlertStateMachine()
    machine.step(ALL)

    event = machine.step(SOME)

    assert event == AlertEvent(AlertKind.SOME_MISSING_NOW, active_count=2, total_count=3)
    assert machine.step(SOME) is None


def test_empty_favorites_are_not_all_present() -> None:
    machine = AlertStateMachine()
    machine.step(ALL)
    event = machine.step(_report())
    assert event is not None
    assert event.kind is AlertKind.SOME_MISSING_NOW
    assert event.total_count == 0


def test_reset_suppresses_next_transition() -> None:
    machine = AlertStateMachine()
    machine.step(ALL)
    machine.reset()

    assert machine.state is AlertState.UNKNOWN
    assert machine.step(SOME) is None


def test_alert_kinds_map_to_pulses() -> None:
    assert AlertKind.ALL_PRESENT_NOW.pulse is PulseKind.SINGLE
    assert AlertKind.SOME_MISSING_NOW.pulse is PulseKind.DOUBLE


def test_dispatch_without_notifications_only_pulses() -> None:
    notifier = FakeNotifier()
    AlertDispatcher(notifier).dispatch(AlertEvent(AlertKind.SOME_MISSING_NOW, 1, 3))

    assert notifier.pulses == [PulseKind.DOUBLE]
    assert notifier.alerts == []


def test_dispatch_with_notifications_alerts() -> None:
    notifier = FakeNotifier()
    dispatcher = AlertDispatcher(notifier, notifications_enabled=True)
    dispatcher.dispatch(AlertEvent(AlertKind.ALL_PRESENT_NOW, 2, 2))

    assert notifier.pulses == [PulseKind.SINGLE]
    assert notifier.alerts == [(ALERT_TITLE, "Active devices: 2 of 2")]


def test_notifier_failure_is_contained() -> None:
    class BrokenNotifier(FakeNotifier):
        def pulse(self, kind: PulseKind) -> None:
            raise RuntimeError("no haptics")

    notifier = BrokenNotifier()
    AlertDispatcher(notifier, notifications_enabled=True).dispatch(
        AlertEvent(AlertKind.ALL_PRESENT_NOW, 1, 1)
    )
    assert notifier.alerts == [(ALERT_TITLE, "Active devices: 1 of 1")]

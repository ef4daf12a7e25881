from __future__ import annotations

import pytest

from beaconctl.core.errors import AlreadyFavoriteError, NotFoundError
from beaconctl.core.model import BATTERY_UNKNOWN, FavoriteDevice
from beaconctl.core.registry import ChangeKind, DeviceRegistry, RegistryChange


def _recording_registry() -> tuple[DeviceRegistry, list[RegistryChange]]:
    registry = DeviceRegistry()
    changes: list[RegistryChange] = []
    registry.subscribe(changes.append)
    return registry, changes


def test_record_observation_inserts_then_updates() -> None:
    registry = DeviceRegistry()

    assert registry.record_observation("dev-1", -70, timestamp=10.0, name="Tag") is True
    assert registry.record_observation("dev-1", -55, timestamp=12.0) is False

    device = registry.discovered("dev-1")
    assert device is not None
    assert device.rssi == -55
    assert device.last_seen == 12.0
    assert device.name == "Tag"
    assert len(registry.discovered_devices()) == 1


def test_last_seen_never_moves_backwards() -> None:
    registry = DeviceRegistry()
    registry.record_observation("dev-1", -70, timestamp=20.0)
    registry.record_observation("dev-1", -60, timestamp=15.0)

    device = registry.discovered("dev-1")
    assert device is not None
    assert device.rssi == -60
    assert device.last_seen == 20.0


def test_clear_discovered_keeps_favorites() -> None:
    registry, changes = _recording_registry()
    registry.record_observation("dev-1", -70, timestamp=1.0)
    registry.add_favorite("dev-1", "Keys")

    registry.clear_discovered()

    assert registry.discovered_devices() == []
    assert registry.is_favorite("dev-1")
    assert changes[-1].kind is ChangeKind.CLEARED


def test_add_favorite_defaults() -> None:
    registry = DeviceRegistry()
    favorite = registry.add_favorite("dev-1", "Keys")

    assert favorite.original_name == "Keys"
    assert favorite.custom_name is None
    assert favorite.battery_level == BATTERY_UNKNOWN
    assert favorite.display_name == "Keys"
    assert registry.is_favorite("dev-1")


def test_add_favorite_twice_raises() -> None:
    registry = DeviceRegistry()
    registry.add_favorite("dev-1", "Keys")

    with pytest.raises(AlreadyFavoriteError):
        registry.add_favorite("dev-1", "Keys again")


def test_remove_absent_favorite_is_noop() -> None:
    registry, changes = _recording_registry()
    registry.remove_favorite("missing")
    assert changes == []


def test_rename_keeps_original_name() -> None:
    registry = DeviceRegistry()
    registry.add_favorite("dev-1", "A")
    registry.rename_favorite("dev-1", "B")

    favorite = registry.favorite("dev-1")
    assert favorite is not None
    assert favorite.display_name == "B"
    assert favorite.original_name == "A"


def test_rename_to_current_display_name_emits_nothing() -> None:
    registry, changes = _recording_registry()
    registry.add_favorite("dev-1", "A")
    changes.clear()

    registry.rename_favorite("dev-1", "A")

    assert changes == []


def test_rename_missing_raises() -> None:
    registry = DeviceRegistry()
    with pytest.raises(NotFoundError):
        registry.rename_favorite("missing", "B")


def test_update_battery_ignores_unknown_ids() -> None:
    registry, changes = _recording_registry()
    registry.update_battery("missing", 80)
    assert changes == []

    registry.add_favorite("dev-1", "Keys")
    registry.update_battery("dev-1", 80)
    favorite = registry.favorite("dev-1")
    assert favorite is not None
    assert favorite.battery_level == 80
    assert changes[-1] == RegistryChange(ChangeKind.BATTERY_UPDATED, "dev-1")


def test_toggle_favorite() -> None:
    registry = DeviceRegistry()
    assert registry.toggle_favorite("dev-1", "Keys") is True
    assert registry.toggle_favorite("dev-1", "Keys") is False
    assert not registry.is_favorite("dev-1")


def test_failing_listener_does_not_block_mutation() -> None:
    registry = DeviceRegistry()
    seen: list[RegistryChange] = []

    def _boom(change: RegistryChange) -> None:
        raise RuntimeError("listener bug")

    registry.subscribe(_boom)
    registry.subscribe(seen.append)
    registry.add_favorite("dev-1", "Keys")

    assert registry.is_favorite("dev-1")
    assert [c.kind for c in seen] == [ChangeKind.FAVORITE_ADDED]


def test_unsubscribe_stops_notifications() -> None:
    registry = DeviceRegistry()
    seen: list[RegistryChange] = []
    unsubscribe = registry.subscribe(seen.append)
    unsubscribe()

    registry.add_favorite("dev-1", "Keys")
    assert seen == []


def test_replace_favorites_skips_duplicates() -> None:
    registry = DeviceRegistry()
    registry.replace_favorites(
        [
            FavoriteDevice(id="dev-1", original_name="First"),
            FavoriteDevice(id="dev-1", original_name="Second"),
            FavoriteDevice(id="dev-2", original_name="Other"),
        ]
    )

    assert [f.original_name for f in registry.favorites()] == ["First", "Other"]


def test_set_hardware_id_on_discovered_device() -> None:
    registry = DeviceRegistry()
    registry.set_hardware_id("missing", "AA:BB")
    registry.record_observation("dev-1", -70, timestamp=1.0)
    registry.set_hardware_id("dev-1", "AA:BB")

    device = registry.discovered("dev-1")
    assert device is not None
    assert device.hardware_id == "AA:BB"

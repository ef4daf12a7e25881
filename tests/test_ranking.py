from __future__ import annotations

from datetime import datetime, timezone

from beaconctl.core.model import FavoriteDevice
from beaconctl.core.ranking import SortOption, sort_favorites
from beaconctl.core.registry import DeviceRegistry


def _registry() -> DeviceRegistry:
    registry = DeviceRegistry()
    registry.replace_favorites(
        [
            FavoriteDevice(
                id="keys",
                original_name="keys",
                date_added=datetime(2025, 1, 1, tzinfo=timezone.utc),
            ),
            FavoriteDevice(
                id="wallet",
                original_name="Wallet",
                date_added=datetime(2025, 3, 1, tzinfo=timezone.utc),
            ),
            FavoriteDevice(
                id="bag",
                original_name="zz",
                custom_name="Bag",
                date_added=datetime(2025, 2, 1, tzinfo=timezone.utc),
            ),
        ]
    )
    registry.record_observation("keys", -80, timestamp=1.0)
    registry.record_observation("wallet", -50, timestamp=1.0)
    registry.record_observation("phone", -40, timestamp=1.0)
    return registry


def _ids(favorites: list[FavoriteDevice]) -> list[str]:
    return [f.id for f in favorites]


def test_sort_by_display_name_case_insensitive() -> None:
    assert _ids(sort_favorites(_registry(), SortOption.NAME)) == ["bag", "keys", "wallet"]


def test_sort_by_date_added_newest_first() -> None:
    assert _ids(sort_favorites(_registry(), SortOption.DATE_ADDED)) == ["wallet", "bag", "keys"]


def test_sort_by_signal_strength_strongest_first() -> None:
    assert _ids(sort_favorites(_registry(), SortOption.SIGNAL_STRENGTH)) == ["wallet", "keys", "bag"]


def test_sort_by_distance_nearest_first() -> None:
    assert _ids(sort_favorites(_registry(), SortOption.DISTANCE)) == ["wallet", "keys", "bag"]


def test_never_observed_favorite_ranks_after_a_far_one() -> None:
    registry = _registry()
    registry.record_observation("keys", -95, timestamp=2.0)
    assert _ids(sort_favorites(registry, SortOption.SIGNAL_STRENGTH))[-1] == "bag"
    assert _ids(sort_favorites(registry, SortOption.DISTANCE))[-1] == "bag"


def test_only_live_orderings_need_observations() -> None:
    assert not SortOption.NAME.needs_observations
    assert not SortOption.DATE_ADDED.needs_observations
    assert SortOption.SIGNAL_STRENGTH.needs_observations
    assert SortOption.CONNECTION_STATUS.needs_observations


def test_sort_by_connection_status_puts_connected_first() -> None:
    ordered = sort_favorites(_registry(), SortOption.CONNECTION_STATUS, connected_id="wallet")
    assert _ids(ordered) == ["wallet", "bag", "keys"]

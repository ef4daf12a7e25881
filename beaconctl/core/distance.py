"""Log-distance path loss estimate and signal quality buckets."""

from __future__ import annotations

from enum import Enum

REFERENCE_RSSI_AT_1M = -59.0
PATH_LOSS_EXPONENT = 2.0


class SignalQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


def distance(
    rssi: int,
    reference_rssi: float = REFERENCE_RSSI_AT_1M,
    path_loss_exponent: float = PATH_LOSS_EXPONENT,
) -> float:
    """Estimate the distance in metres for a signal strength reading.

    Magnitudes are used on both sides so a positive or zero reading still
    yields a finite, non-negative estimate.
    """
    exponent = (abs(rssi) - abs(reference_rssi)) / (10 * path_loss_exponent)
    return 10.0**exponent


def signal_quality(rssi: int) -> SignalQuality:
    strength = abs(rssi)
    if strength <= 50:
        return SignalQuality.EXCELLENT
    if strength <= 70:
        return SignalQuality.GOOD
    if strength <= 90:
        return SignalQuality.FAIR
    return SignalQuality.POOR

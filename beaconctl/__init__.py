"""Track favorite Bluetooth beacons and alert on presence changes."""

__version__ = "0.1.0"

"""Domain-specific errors for beaconctl."""


class BeaconctlError(Exception):
    """Base error for beaconctl."""


class AlreadyFavoriteError(BeaconctlError):
    """Raised when adding a favorite whose id is already pinned."""


class NotFoundError(BeaconctlError):
    """Raised when a favorite operation targets an id that is not pinned."""


class RadioNotReadyError(BeaconctlError):
    """Raised when scanning is requested while the radio is not ready."""


class ConfigError(BeaconctlError):
    """Raised when the configuration file is unreadable or invalid."""


class StorageError(BeaconctlError):
    """Base storage error."""


class PersistError(StorageError):
    """Raised when writing favorites to durable storage fails."""


class LoadError(StorageError):
    """Raised when reading favorites from durable storage fails."""

class PulseError(Exception):
    """Base class for recoverable usage-pulse failures."""


class FetchError(PulseError):
    """Retrieving a usage snapshot failed."""


class PersistError(PulseError):
    """Writing settings to storage failed."""


class LoadError(PulseError):
    """Reading settings from storage failed."""

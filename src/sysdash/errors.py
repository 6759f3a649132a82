"""Exception types for sysdash."""


class SysdashError(Exception):
    """Base class for all sysdash errors."""


class ConfigError(SysdashError):
    """Configuration file is missing, unreadable or holds invalid values."""


class InputDecodeError(SysdashError):
    """A raw terminal event could not be turned into an Event."""


class ShutdownTimeoutError(SysdashError):
    """A background task did not finish within the stop retry budget."""

from __future__ import annotations


class HotrunError(Exception):
    """Base class for all hotrun errors."""


class StartupError(HotrunError):
    """Raised before the watch loop starts; the daemon cannot run."""


class ConfigError(StartupError):
    pass


class CommandError(ConfigError):
    """A build or run command line is unusable (e.g. blank)."""


class WatchInitError(StartupError):
    """The file-watch subsystem could not be initialized."""

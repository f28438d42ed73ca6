"""Exception types shared across the simulation."""


class NeuroroadError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(NeuroroadError, ValueError):
    """A parameter would violate an invariant (scale, lane, layer sizes...)."""


class LaneIndexError(ConfigurationError):
    def __init__(self, lane, lanes):
        super().__init__(f"lane {lane} out of range for a road with {lanes} lanes")
        self.lane = lane
        self.lanes = lanes


class NetworkLoadError(NeuroroadError):
    """A network checkpoint is missing or unreadable. Callers recover from it."""

    def __init__(self, path, reason):
        super().__init__(f"could not load network from {path}: {reason}")
        self.path = path
        self.reason = reason

class ReplayError(Exception):
    """Base class for all replay buffer errors."""


class InvalidArgumentError(ReplayError, ValueError):
    pass


class DimensionMismatchError(ReplayError, ValueError):
    """Encoded state length differs from the configured state size."""


class EmptyBufferError(ReplayError, RuntimeError):
    pass


class IndexOutOfRangeError(ReplayError, IndexError):
    pass

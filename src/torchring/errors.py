"""Exception types raised by torchring."""


class TorchRingError(Exception):
    """Base class for torchring errors."""


class ConfigError(TorchRingError, ValueError):
    """Invalid structural parameter for a grid or quadrature rule."""


class ConvergenceError(TorchRingError, RuntimeError):
    """An iterative quadrature solver did not converge."""

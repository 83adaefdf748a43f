"""torchnewton: bounded Newton-Raphson root finding for PyTorch."""

from . import root_finding

__all__ = [
    "root_finding",
]

__version__ = "0.1.0"

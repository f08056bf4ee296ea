"""Bridge between a local editor and GhostText browser clients."""

__all__ = [
    "adapters",
    "buffer",
    "config",
    "host",
    "runtime",
    "server",
    "sync",
]

__version__ = "0.1.0"

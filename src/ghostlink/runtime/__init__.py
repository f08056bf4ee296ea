"""Runtime services shared by every layer of the bridge."""

from . import telemetry

__all__ = ["telemetry"]

"""Shared-bus arbitration modules."""

from .arbiter import Arbiter
from .burst import BurstTracker

__all__ = ["Arbiter", "BurstTracker"]

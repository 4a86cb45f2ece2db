"""Scheduling helpers for the PE grid."""

from .delay_groups import DelayGroupTable

__all__ = ["DelayGroupTable"]

"""Phase controller for the output-stationary core."""

from .controller import Controller

__all__ = ["Controller"]

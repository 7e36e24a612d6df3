"""Core building blocks: exceptions, Result and request plumbing."""

from .result import Result

__all__ = ["Result"]

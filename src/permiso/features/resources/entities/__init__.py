from .resource import Resource

__all__ = ["Resource"]

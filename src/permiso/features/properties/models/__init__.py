from .requests import PropertyRequest, ensure_unique_names

__all__ = ["PropertyRequest", "ensure_unique_names"]

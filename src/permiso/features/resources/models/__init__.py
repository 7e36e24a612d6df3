from .requests import ResourceCreateRequest, ResourceUpdateRequest

__all__ = ["ResourceCreateRequest", "ResourceUpdateRequest"]

from .requests import RoleCreateRequest, RoleUpdateRequest

__all__ = ["RoleCreateRequest", "RoleUpdateRequest"]

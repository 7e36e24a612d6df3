from .requests import TenantCreateRequest, TenantUpdateRequest

__all__ = ["TenantCreateRequest", "TenantUpdateRequest"]

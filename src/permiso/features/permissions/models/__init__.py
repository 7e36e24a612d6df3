from .requests import GrantRequest, PermissionFilter, PrefixFilter

__all__ = ["GrantRequest", "PermissionFilter", "PrefixFilter"]

from .requests import UserCreateRequest, UserUpdateRequest

__all__ = ["UserCreateRequest", "UserUpdateRequest"]

"""Auto friend add module."""

from .module import AutoFriendAdd


def create_module() -> AutoFriendAdd:
    """Factory function for module discovery."""
    return AutoFriendAdd()


__all__ = ["AutoFriendAdd", "create_module"]

"""
Users Module - account lookup and moderation.
"""

from agora.modules.users.service import UserService

__all__ = ["UserService"]

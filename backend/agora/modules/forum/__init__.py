"""
Forum Module - Community discussions.

Features:
- Forums, posts and threaded replies
- Image attachments
- Denormalized post/reply/view counters
"""

from agora.modules.forum.service import ForumService

__all__ = ["ForumService"]

from community.models.base import Base
from community.models.comment import Comment
from community.models.engagement_edge import EngagementEdge
from community.models.notification import Notification
from community.models.post import Post
from community.models.profile import Profile

__all__ = [
    "Base",
    "Profile",
    "Post",
    "Comment",
    "EngagementEdge",
    "Notification",
]

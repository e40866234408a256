from .user import User, UserRole, UserFollow, UserInterest
from .article import Article, ArticleStatus, article_categories, article_tags
from .category import Category
from .tag import Tag
from .comment import Comment
from .engagement import Like, Bookmark, Notification, NotificationType
from .media import Media

__all__ = [
    "User",
    "UserRole",
    "UserFollow",
    "UserInterest",
    "Article",
    "ArticleStatus",
    "article_categories",
    "article_tags",
    "Category",
    "Tag",
    "Comment",
    "Like",
    "Bookmark",
    "Notification",
    "NotificationType",
    "Media",
]

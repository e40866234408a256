import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, ForeignKey, Table, Index, event
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.database import Base
from app.models.user import utcnow

WORDS_PER_MINUTE = 200
CHARS_PER_WORD = 5


class ArticleStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


article_categories = Table(
    "article_categories",
    Base.metadata,
    Column("article_id", String(36), ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", String(36), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

article_tags = Table(
    "article_tags",
    Base.metadata,
    Column("article_id", String(36), ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


def calculate_reading_time(content: str) -> int:
    """Whole minutes to read ``content``, never less than one."""
    words = len(content or "") // CHARS_PER_WORD
    return max(1, words // WORDS_PER_MINUTE)


class Article(Base):
    __tablename__ = "articles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, default="")
    featured_image_url = Column(String(500))
    status = Column(String(20), nullable=False, default=ArticleStatus.DRAFT.value, index=True)
    published_at = Column(DateTime(timezone=True), index=True)
    view_count = Column(Integer, nullable=False, default=0, index=True)
    reading_time_minutes = Column(Integer, nullable=False, default=1)
    is_staff_pick = Column(Boolean, nullable=False, default=False, index=True)
    meta_title = Column(String(255))
    meta_description = Column(String(500))
    meta_keywords = Column(String(500))
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    deleted_at = Column(DateTime(timezone=True), index=True)

    # Relationships
    author = relationship("User", back_populates="articles")
    categories = relationship("Category", secondary=article_categories, back_populates="articles")
    tags = relationship("Tag", secondary=article_tags, back_populates="articles")
    comments = relationship("Comment", back_populates="article", lazy="dynamic")

    __table_args__ = (
        Index("idx_articles_status_published_at", "status", "published_at"),
    )

    @property
    def is_published(self) -> bool:
        return self.status == ArticleStatus.PUBLISHED.value and self.published_at is not None

    def publish(self):
        self.status = ArticleStatus.PUBLISHED.value
        self.published_at = datetime.now(timezone.utc)

    def unpublish(self):
        self.status = ArticleStatus.DRAFT.value
        self.published_at = None

    def archive(self):
        self.status = ArticleStatus.ARCHIVED.value
        self.published_at = None

    def update_reading_time(self):
        self.reading_time_minutes = calculate_reading_time(self.content)

    def __repr__(self):
        return f"<Article(id={self.id}, slug='{self.slug}', status='{self.status}')>"


@event.listens_for(Article, "before_insert")
@event.listens_for(Article, "before_update")
def _recompute_reading_time(mapper, connection, target):
    target.update_reading_time()

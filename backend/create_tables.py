#!/usr/bin/env python3
"""
Create database tables and supporting indexes
"""
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from app.db.database import engine, Base
from app.models import *  # noqa: F401,F403 registers every table on Base.metadata

POSTGRES_INDEXES = [
    # listing published articles newest-first
    """
    CREATE INDEX IF NOT EXISTS idx_articles_published_live
    ON articles(published_at DESC)
    WHERE status = 'published' AND deleted_at IS NULL;
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_articles_view_count_live
    ON articles(view_count DESC)
    WHERE status = 'published' AND deleted_at IS NULL;
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_article_categories_category
    ON article_categories(category_id);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_article_tags_tag
    ON article_tags(tag_id);
    """,
]


def create_database():
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    if engine.dialect.name == "postgresql":
        try:
            with engine.connect() as conn:
                for statement in POSTGRES_INDEXES:
                    conn.execute(text(statement))
                conn.commit()
        except SQLAlchemyError as e:
            print(f"Index creation failed (continuing): {e}")

    print("Database tables created successfully!")


if __name__ == "__main__":
    create_database()

import os
import tempfile

# Settings are read at import time, so configure the environment first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_RATE_LIMIT"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-signing-only"
os.environ["UPLOAD_PATH"] = tempfile.mkdtemp(prefix="blog_uploads_")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app import models  # noqa: F401
from app.core.security import create_access_token
from app.db.database import Base, get_db
from app.main import app
from app.models.article import Article, ArticleStatus
from app.models.category import Category
from app.models.tag import Tag
from app.models.user import UserRole
from app.services.user_service import UserService

PASSWORD = "Secret123"


@pytest.fixture
def engine(tmp_path):
    """Use a temporary database for each test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=UserRole.READER, username=None, **fields):
        counter["n"] += 1
        username = username or f"{role.value}{counter['n']}"
        user = UserService.create_user(db, username, f"{username}@example.com", PASSWORD, role=role)
        if fields:
            for key, value in fields.items():
                setattr(user, key, value)
            db.commit()
            db.refresh(user)
        return user

    return _make


def auth_headers(user):
    token, _ = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def reader(make_user):
    return make_user(UserRole.READER, username="reader")


@pytest.fixture
def author(make_user):
    return make_user(UserRole.AUTHOR, username="author", first_name="Ada", last_name="Writer")


@pytest.fixture
def editor(make_user):
    return make_user(UserRole.EDITOR, username="editor")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, username="admin")


@pytest.fixture
def make_category(db):
    def _make(name, parent=None, display_order=0):
        from app.utils.slug import slugify
        category = Category(
            name=name,
            slug=slugify(name),
            parent_id=parent.id if parent else None,
            display_order=display_order,
        )
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    return _make


@pytest.fixture
def make_tag(db):
    def _make(name, usage_count=0):
        from app.utils.slug import slugify
        tag = Tag(name=name, slug=slugify(name), usage_count=usage_count)
        db.add(tag)
        db.commit()
        db.refresh(tag)
        return tag

    return _make


@pytest.fixture
def make_article(db):
    """Insert an article directly, bypassing the service layer."""
    counter = {"n": 0}

    def _make(author, title=None, status=ArticleStatus.PUBLISHED, categories=(), tags=(), **fields):
        counter["n"] += 1
        title = title or f"Article {counter['n']}"
        from app.utils.slug import slugify
        article = Article(
            title=title,
            slug=fields.pop("slug", None) or f"{slugify(title)}-{counter['n']}",
            content=fields.pop("content", "Some body text " * 20),
            author_id=author.id,
            categories=list(categories),
            tags=list(tags),
            **fields,
        )
        if status == ArticleStatus.PUBLISHED:
            article.publish()
        else:
            article.status = status.value
        db.add(article)
        db.commit()
        db.refresh(article)
        return article

    return _make

import pytest

from app.models.article import Article
from app.models.user import ROLE_RANKS, User, UserRole, has_permission

ROLES = [UserRole.READER, UserRole.AUTHOR, UserRole.EDITOR, UserRole.ADMIN]


def make(role, active=True, user_id="u-1"):
    return User(id=user_id, username="someone", email="someone@example.com", role=role.value, is_active=active)


def test_roles_are_totally_ordered():
    assert [ROLE_RANKS[r] for r in ROLES] == [1, 2, 3, 4]
    assert UserRole.EDITOR.rank > UserRole.AUTHOR.rank


@pytest.mark.parametrize("actual", ROLES)
@pytest.mark.parametrize("required", ROLES)
def test_has_permission_matches_rank_order(actual, required):
    assert has_permission(actual, required) == (actual.rank >= required.rank)
    assert actual.has_permission(required) == (actual.rank >= required.rank)


def test_has_permission_accepts_stored_strings_and_rejects_unknown():
    assert has_permission("editor", UserRole.AUTHOR)
    assert not has_permission("superuser", UserRole.READER)


def test_article_creation_requires_author_and_active():
    assert not make(UserRole.READER).can_create_article()
    assert make(UserRole.AUTHOR).can_create_article()
    assert make(UserRole.ADMIN).can_create_article()
    assert not make(UserRole.AUTHOR, active=False).can_create_article()


def test_edit_is_allowed_for_owner_or_editor():
    article = Article(author_id="owner")
    assert make(UserRole.AUTHOR, user_id="owner").can_edit_article(article)
    assert not make(UserRole.AUTHOR, user_id="other").can_edit_article(article)
    assert make(UserRole.EDITOR, user_id="other").can_edit_article(article)
    assert make(UserRole.ADMIN, user_id="other").can_delete_article(article)
    assert not make(UserRole.EDITOR, active=False, user_id="other").can_edit_article(article)


def test_publish_and_taxonomy_management_require_editor():
    for check in ("can_publish_article", "can_manage_categories", "can_manage_tags", "can_view_all_users"):
        assert not getattr(make(UserRole.AUTHOR), check)()
        assert getattr(make(UserRole.EDITOR), check)()
        assert getattr(make(UserRole.ADMIN), check)()


def test_user_management_is_admin_only():
    assert not make(UserRole.EDITOR).can_manage_users()
    assert make(UserRole.ADMIN).can_manage_users()
    assert not make(UserRole.ADMIN, active=False).can_manage_users()


def test_full_name_falls_back_to_username():
    user = User(username="jdoe", first_name="", last_name="")
    assert user.full_name == "jdoe"
    user.first_name = "Jane"
    assert user.full_name == "Jane"
    user.last_name = "Doe"
    assert user.full_name == "Jane Doe"

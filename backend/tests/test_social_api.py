import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.exceptions import ConflictError, InternalError
from app.models.article import ArticleStatus
from app.models.engagement import Notification
from app.models.user import UserInterest, UserRole
from app.repositories.user_repository import SocialGraphRepository
from conftest import auth_headers

USERS = "/api/v1/users"


class TestFollow:
    def test_cannot_follow_self(self, client, reader):
        response = client.post(f"{USERS}/{reader.id}/follow", headers=auth_headers(reader))
        assert response.status_code == 400
        assert response.json()["code"] == "SELF_FOLLOW"

    def test_follow_missing_user(self, client, reader):
        response = client.post(f"{USERS}/does-not-exist/follow", headers=auth_headers(reader))
        assert response.status_code == 404

    def test_follow_is_idempotent_and_notifies_once(self, client, db, reader, author):
        for _ in range(2):
            response = client.post(f"{USERS}/{author.id}/follow", headers=auth_headers(reader))
            assert response.status_code == 200
            assert response.json()["is_following"] is True
        assert SocialGraphRepository.is_following(db, reader.id, author.id)
        assert not SocialGraphRepository.is_following(db, author.id, reader.id)
        notes = db.query(Notification).filter(Notification.user_id == author.id, Notification.type == "follow").all()
        assert len(notes) == 1
        assert notes[0].message == "reader started following you"

    def test_unfollow_missing_edge_is_noop(self, client, reader, author):
        response = client.delete(f"{USERS}/{author.id}/follow", headers=auth_headers(reader))
        assert response.status_code == 200
        assert response.json()["is_following"] is False

    def test_followers_and_following_lists(self, client, make_user, author):
        fans = [make_user(username=f"fan{i}") for i in range(3)]
        for fan in fans:
            client.post(f"{USERS}/{author.id}/follow", headers=auth_headers(fan))
        client.delete(f"{USERS}/{author.id}/follow", headers=auth_headers(fans[0]))

        followers = client.get(f"{USERS}/{author.id}/followers").json()
        assert followers["total"] == 2
        assert {u["username"] for u in followers["items"]} == {"fan1", "fan2"}

        following = client.get(f"{USERS}/{fans[1].id}/following").json()
        assert following["total"] == 1
        assert following["items"][0]["id"] == author.id

    def test_profile_counts_and_viewer_flag(self, client, reader, author, make_article):
        make_article(author)
        make_article(author, status=ArticleStatus.DRAFT)
        client.post(f"{USERS}/{author.id}/follow", headers=auth_headers(reader))

        profile = client.get(f"{USERS}/{author.id}", headers=auth_headers(reader)).json()
        assert profile["article_count"] == 1
        assert profile["followers_count"] == 1
        assert profile["following_count"] == 0
        assert profile["is_following"] is True

        anonymous = client.get(f"{USERS}/{author.id}").json()
        assert anonymous["is_following"] is False


class TestInterests:
    def test_set_interests_replaces_and_deduplicates(self, client, reader, make_category):
        a, b, c = make_category("Alpha"), make_category("Beta"), make_category("Gamma")
        headers = auth_headers(reader)

        first = client.put(f"{USERS}/interests", json={"category_ids": [a.id, b.id, a.id]}, headers=headers)
        assert first.status_code == 200
        assert {cat["id"] for cat in first.json()} == {a.id, b.id}

        second = client.put(f"{USERS}/interests", json={"category_ids": [c.id]}, headers=headers)
        assert [cat["id"] for cat in second.json()] == [c.id]
        assert [cat["id"] for cat in client.get(f"{USERS}/interests", headers=headers).json()] == [c.id]

    def test_unknown_category_leaves_previous_set_intact(self, client, db, reader, make_category):
        a = make_category("Alpha")
        headers = auth_headers(reader)
        client.put(f"{USERS}/interests", json={"category_ids": [a.id]}, headers=headers)

        response = client.put(f"{USERS}/interests", json={"category_ids": [a.id, "missing"]}, headers=headers)
        assert response.status_code == 404
        rows = db.query(UserInterest).filter(UserInterest.user_id == reader.id).all()
        assert [r.category_id for r in rows] == [a.id]

    def test_clear_interests(self, client, reader, make_category):
        a = make_category("Alpha")
        headers = auth_headers(reader)
        client.put(f"{USERS}/interests", json={"category_ids": [a.id]}, headers=headers)
        assert client.delete(f"{USERS}/interests", headers=headers).status_code == 200
        assert client.get(f"{USERS}/interests", headers=headers).json() == []

    def test_interest_ids_are_distinct(self, db, reader, make_category):
        a, b = make_category("Alpha"), make_category("Beta")
        SocialGraphRepository.set_interests(db, reader.id, [a.id, b.id, b.id])
        assert sorted(SocialGraphRepository.get_interest_ids(db, reader.id)) == sorted([a.id, b.id])

    @pytest.mark.parametrize(
        "error, expected",
        [
            (IntegrityError("INSERT INTO user_interests", {}, Exception("duplicate key")), ConflictError),
            (OperationalError("INSERT INTO user_interests", {}, Exception("disk I/O error")), InternalError),
        ],
    )
    def test_failure_after_delete_keeps_previous_set(
        self, db, session_factory, reader, make_category, monkeypatch, error, expected
    ):
        a, b = make_category("Alpha"), make_category("Beta")
        user_id, old_id, new_id = reader.id, a.id, b.id
        SocialGraphRepository.set_interests(db, user_id, [old_id])

        def failing_commit():
            # the delete and the new rows reach the database before the failure
            db.flush()
            raise error

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(expected):
            SocialGraphRepository.set_interests(db, user_id, [new_id])
        monkeypatch.undo()

        other = session_factory()
        try:
            assert SocialGraphRepository.get_interest_ids(other, user_id) == [old_id]
        finally:
            other.close()


class TestFeed:
    def test_feed_requires_auth(self, client):
        assert client.get("/api/v1/articles/feed").status_code == 401

    def test_empty_graph_falls_back_to_all_published(self, client, reader, author, make_article):
        make_article(author, title="One")
        make_article(author, title="Two")
        make_article(author, title="Draft", status=ArticleStatus.DRAFT)
        body = client.get("/api/v1/articles/feed", headers=auth_headers(reader)).json()
        assert body["total"] == 2

    def test_feed_unions_followed_authors_and_interests(
        self, client, make_user, reader, author, make_article, make_category
    ):
        stranger = make_user(username="stranger", role=UserRole.AUTHOR)
        science = make_category("Science")
        make_article(author, title="From Followed")
        make_article(stranger, title="In Interest", categories=[science])
        make_article(stranger, title="Neither")
        make_article(author, title="Followed Draft", status=ArticleStatus.DRAFT)

        headers = auth_headers(reader)
        client.post(f"{USERS}/{author.id}/follow", headers=headers)
        client.put(f"{USERS}/interests", json={"category_ids": [science.id]}, headers=headers)

        body = client.get("/api/v1/articles/feed", headers=headers).json()
        assert body["total"] == 2
        assert {a["title"] for a in body["articles"]} == {"From Followed", "In Interest"}

    def test_article_in_followed_and_interest_appears_once(
        self, client, reader, author, make_article, make_category
    ):
        science = make_category("Science")
        make_article(author, title="Both", categories=[science])
        headers = auth_headers(reader)
        client.post(f"{USERS}/{author.id}/follow", headers=headers)
        client.put(f"{USERS}/interests", json={"category_ids": [science.id]}, headers=headers)
        body = client.get("/api/v1/articles/feed", headers=headers).json()
        assert [a["title"] for a in body["articles"]] == ["Both"]

from app.repositories.category_repository import CategoryRepository
from app.repositories.tag_repository import TagRepository
from conftest import auth_headers

CATEGORIES = "/api/v1/categories"
TAGS = "/api/v1/tags"


class TestCategories:
    def test_editor_creates_with_unique_slug(self, client, editor, make_category):
        make_category("Data Science")
        response = client.post(CATEGORIES, json={"name": "Data  Science!"}, headers=auth_headers(editor))
        assert response.status_code == 201
        body = response.json()
        assert body["slug"] == "data-science-1"
        assert body["article_count"] == 0

    def test_duplicate_name_conflict(self, client, editor, make_category):
        make_category("Python")
        response = client.post(CATEGORIES, json={"name": "python"}, headers=auth_headers(editor))
        assert response.status_code == 409
        assert response.json()["code"] == "CATEGORY_EXISTS"

    def test_concurrent_duplicate_name_conflict(self, client, editor, make_category, monkeypatch):
        make_category("Python")
        monkeypatch.setattr(CategoryRepository, "name_taken", staticmethod(lambda db, name, exclude_id=None: False))
        response = client.post(CATEGORIES, json={"name": "Python"}, headers=auth_headers(editor))
        assert response.status_code == 409
        assert response.json()["code"] == "CATEGORY_EXISTS"

    def test_name_matching_fixed_route_gets_suffix(self, client, editor):
        response = client.post(CATEGORIES, json={"name": "Tree"}, headers=auth_headers(editor))
        assert response.json()["slug"] == "tree-1"
        assert client.get(f"{CATEGORIES}/tree-1").json()["name"] == "Tree"

    def test_reader_and_author_forbidden(self, client, reader, author):
        for user in (reader, author):
            assert client.post(CATEGORIES, json={"name": "Nope"}, headers=auth_headers(user)).status_code == 403

    def test_unknown_parent(self, client, editor):
        response = client.post(CATEGORIES, json={"name": "Orphan", "parent_id": "missing"}, headers=auth_headers(editor))
        assert response.status_code == 404

    def test_tree_orders_siblings(self, client, make_category):
        tech = make_category("Tech")
        make_category("Web", parent=tech, display_order=2)
        make_category("AI", parent=tech, display_order=1)
        make_category("Art")

        tree = client.get(f"{CATEGORIES}/tree").json()
        assert [node["name"] for node in tree] == ["Art", "Tech"]
        assert [child["name"] for child in tree[1]["children"]] == ["AI", "Web"]

    def test_detail_counts_published_articles(self, client, author, make_article, make_category):
        from app.models.article import ArticleStatus

        parent = make_category("Tech")
        child = make_category("AI", parent=parent)
        make_article(author, categories=[parent])
        make_article(author, status=ArticleStatus.DRAFT, categories=[parent])

        body = client.get(f"{CATEGORIES}/tech").json()
        assert body["article_count"] == 1
        assert [c["id"] for c in body["children"]] == [child.id]
        assert client.get(f"{CATEGORIES}/tech/articles").json()["total"] == 1

    def test_cannot_be_own_parent(self, client, editor, make_category):
        category = make_category("Loop")
        response = client.put(
            f"{CATEGORIES}/{category.id}", json={"parent_id": category.id}, headers=auth_headers(editor)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PARENT"

    def test_cannot_reparent_under_descendant(self, client, editor, make_category):
        root = make_category("Root")
        child = make_category("Child", parent=root)
        grandchild = make_category("Grandchild", parent=child)
        response = client.put(
            f"{CATEGORIES}/{root.id}", json={"parent_id": grandchild.id}, headers=auth_headers(editor)
        )
        assert response.status_code == 400

    def test_rename_regenerates_slug(self, client, editor, make_category):
        category = make_category("Old Name")
        body = client.put(
            f"{CATEGORIES}/{category.id}", json={"name": "New Name"}, headers=auth_headers(editor)
        ).json()
        assert body["slug"] == "new-name"

    def test_clear_parent(self, client, editor, make_category):
        root = make_category("Root")
        child = make_category("Child", parent=root)
        body = client.put(f"{CATEGORIES}/{child.id}", json={"parent_id": None}, headers=auth_headers(editor)).json()
        assert body["parent_id"] is None

    def test_delete_guards(self, client, editor, author, make_article, make_category):
        headers = auth_headers(editor)
        root = make_category("Root")
        make_category("Child", parent=root)
        used = make_category("Used")
        make_article(author, categories=[used])
        empty = make_category("Empty")

        assert client.delete(f"{CATEGORIES}/{root.id}", headers=headers).json()["code"] == "CATEGORY_HAS_CHILDREN"
        assert client.delete(f"{CATEGORIES}/{used.id}", headers=headers).json()["code"] == "CATEGORY_HAS_ARTICLES"
        assert client.delete(f"{CATEGORIES}/{empty.id}", headers=headers).status_code == 204
        assert client.get(f"{CATEGORIES}/empty").status_code == 404

    def test_list_hides_inactive_by_default(self, client, editor, make_category):
        hidden = make_category("Hidden")
        make_category("Visible")
        client.put(f"{CATEGORIES}/{hidden.id}", json={"is_active": False}, headers=auth_headers(editor))

        assert [c["name"] for c in client.get(CATEGORIES).json()["items"]] == ["Visible"]
        assert client.get(CATEGORIES, params={"include_inactive": True}).json()["total"] == 2


class TestTags:
    def test_create_and_fetch(self, client, editor):
        created = client.post(TAGS, json={"name": "Machine Learning"}, headers=auth_headers(editor))
        assert created.status_code == 201
        assert created.json()["slug"] == "machine-learning"
        assert client.get(f"{TAGS}/machine-learning").json()["usage_count"] == 0

    def test_author_cannot_create(self, client, author):
        assert client.post(TAGS, json={"name": "x"}, headers=auth_headers(author)).status_code == 403

    def test_concurrent_duplicate_name_conflict(self, client, editor, make_tag, monkeypatch):
        make_tag("rust")
        monkeypatch.setattr(TagRepository, "name_taken", staticmethod(lambda db, name, exclude_id=None: False))
        response = client.post(TAGS, json={"name": "rust"}, headers=auth_headers(editor))
        assert response.status_code == 409
        assert response.json()["code"] == "TAG_EXISTS"

    def test_name_matching_fixed_route_gets_suffix(self, client, editor):
        response = client.post(TAGS, json={"name": "Popular"}, headers=auth_headers(editor))
        assert response.json()["slug"] == "popular-1"
        assert client.get(f"{TAGS}/popular-1").json()["name"] == "Popular"

    def test_popular_orders_by_usage(self, client, make_tag):
        make_tag("rare", usage_count=1)
        make_tag("common", usage_count=5)
        make_tag("unused")
        make_tag("also-common", usage_count=5)

        names = [t["name"] for t in client.get(f"{TAGS}/popular").json()]
        assert names == ["also-common", "common", "rare"]
        assert len(client.get(f"{TAGS}/popular", params={"limit": 1}).json()) == 1

    def test_usage_count_follows_article_tags(self, client, db, author, make_tag):
        tag = make_tag("python")
        headers = auth_headers(author)
        article = client.post(
            "/api/v1/articles",
            json={"title": "Tagged", "content": "Body text", "tag_ids": [tag.id]},
            headers=headers,
        ).json()
        db.refresh(tag)
        assert tag.usage_count == 1

        client.put(f"/api/v1/articles/{article['id']}", json={"tag_ids": []}, headers=headers)
        db.refresh(tag)
        assert tag.usage_count == 0

    def test_delete_in_use_conflict(self, client, editor, make_tag):
        busy = make_tag("busy", usage_count=2)
        idle = make_tag("idle")
        headers = auth_headers(editor)
        response = client.delete(f"{TAGS}/{busy.id}", headers=headers)
        assert response.status_code == 409
        assert response.json()["code"] == "TAG_IN_USE"
        assert client.delete(f"{TAGS}/{idle.id}", headers=headers).status_code == 204

    def test_tag_articles(self, client, author, make_article, make_tag):
        tag = make_tag("python", usage_count=1)
        make_article(author, title="Tagged", tags=[tag])
        make_article(author, title="Untagged")
        body = client.get(f"{TAGS}/python/articles").json()
        assert [a["title"] for a in body["articles"]] == ["Tagged"]

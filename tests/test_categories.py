"""Tests for task categories."""

from taskmate.model.category import Category
from taskmate.model.task import Task


class TestCategories:
    """Test /api/categories."""

    def test_create_and_list(self, client, auth_headers):
        client.post("/api/categories", json={"name": " Thesis ", "color": "#8b5cf6"}, headers=auth_headers)
        client.post("/api/categories", json={"name": "Gym"}, headers=auth_headers)

        body = client.get("/api/categories", headers=auth_headers).json()

        assert body["count"] == 2
        assert [c["name"] for c in body["data"]] == ["Gym", "Thesis"]
        assert body["data"][1]["color"] == "#8B5CF6"

    def test_duplicate_name(self, client, auth_headers):
        client.post("/api/categories", json={"name": "Gym"}, headers=auth_headers)
        body = client.post("/api/categories", json={"name": "Gym"}, headers=auth_headers).json()

        assert body["msg"] == "Category already exists"

    def test_invalid_color(self, client, auth_headers):
        body = client.post("/api/categories", json={"name": "Gym", "color": "red"}, headers=auth_headers).json()

        assert body["success"] is False
        assert body["msg"] == "color must look like #RRGGBB"

    def test_delete_detaches_tasks(self, client, auth_headers, db_session, user):
        category = Category(user_id=user.user_id, name="Gym")
        db_session.add(category)
        db_session.commit()
        task = Task(user_id=user.user_id, category="personal", title="Leg day", category_id=category.category_id)
        db_session.add(task)
        db_session.commit()
        task_id = task.task_id

        body = client.delete(f"/api/categories/{category.category_id}", headers=auth_headers).json()

        assert body["msg"] == "Category deleted"
        db_session.expire_all()
        assert db_session.get(Task, task_id).category_id is None
        assert db_session.query(Category).count() == 0

    def test_other_users_category(self, client, auth_headers, db_session, other_user):
        category = Category(user_id=other_user.user_id, name="Private")
        db_session.add(category)
        db_session.commit()

        body = client.delete(f"/api/categories/{category.category_id}", headers=auth_headers).json()

        assert body["msg"] == "Category not found"
        assert db_session.query(Category).count() == 1

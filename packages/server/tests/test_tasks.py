"""
Integration tests for Task endpoints.

Tests cover:
- Creation inside owned projects, default assignee
- Visibility for project owner vs. assignee vs. stranger
- Assignee may update but not delete
- Reference validation on update (no partial writes)
- Status parsing and due-date validation
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta

import pytest

from taskhub_shared.schemas.common import TaskStatus
from taskhub_shared.schemas.tasks import TaskCreate, TaskRequest


async def _create_project(client, headers, name: str = "Project X") -> dict:
    response = await client.post("/api/projects", json={"name": name}, headers=headers)
    assert response.status_code == 201
    return response.json()


def _ts(value: str) -> datetime:
    """Parse an API timestamp; SQLite reloads drop the UTC offset."""
    return datetime.fromisoformat(value).replace(tzinfo=None)


async def _create_task(client, headers, project_id: str, **fields) -> dict:
    body = {"title": "Write report", "projectId": project_id}
    body.update(fields)
    response = await client.post("/api/tasks", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class TestTaskSchemas:
    def test_status_defaults_to_todo(self):
        req = TaskRequest(title="Do it")
        assert req.status == TaskStatus.TODO
        assert req.project_id is None
        assert req.assignee_id is None

    def test_status_is_case_insensitive(self):
        assert TaskStatus("in_progress") == TaskStatus.IN_PROGRESS
        assert TaskStatus("in-progress") == TaskStatus.IN_PROGRESS
        assert TaskStatus("Done") == TaskStatus.DONE

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            TaskRequest(title="Do it", status="BLOCKED")

    def test_blank_title_rejected(self):
        with pytest.raises(ValueError):
            TaskRequest(title="   ")

    def test_title_limit(self):
        with pytest.raises(ValueError):
            TaskRequest(title="t" * 256)

    def test_create_rejects_past_due_date(self):
        with pytest.raises(ValueError):
            TaskCreate(title="Late", due_date=date.today() - timedelta(days=1))

    def test_create_accepts_today(self):
        assert TaskCreate(title="Now", due_date=date.today()).due_date == date.today()

    def test_update_allows_past_due_date(self):
        past = date.today() - timedelta(days=3)
        assert TaskRequest(title="Late", due_date=past).due_date == past


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_defaults_assignee_to_creator(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com", "Owner")
        project = await _create_project(client, auth_headers(owner))

        task = await _create_task(client, auth_headers(owner), project["id"], assigneeId=None)
        assert task["title"] == "Write report"
        assert task["status"] == "TODO"
        assert task["projectId"] == project["id"]
        assert task["projectName"] == "Project X"
        assert task["assigneeId"] == str(owner.id)
        assert task["assigneeName"] == "Owner"

    @pytest.mark.asyncio
    async def test_explicit_assignee(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        helper = await make_user("helper@example.com", "Helper")
        project = await _create_project(client, auth_headers(owner))

        task = await _create_task(
            client,
            auth_headers(owner),
            project["id"],
            assigneeId=str(helper.id),
            status="IN_PROGRESS",
            dueDate=(date.today() + timedelta(days=7)).isoformat(),
        )
        assert task["assigneeId"] == str(helper.id)
        assert task["assigneeName"] == "Helper"
        assert task["status"] == "IN_PROGRESS"
        assert task["dueDate"] == (date.today() + timedelta(days=7)).isoformat()

    @pytest.mark.asyncio
    async def test_missing_project_id_is_400(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        response = await client.post("/api/tasks", json={"title": "Orphan"}, headers=auth_headers(owner))
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "BAD_REQUEST"
        assert "projectId" in error["message"]

    @pytest.mark.asyncio
    async def test_foreign_project_is_404_and_persists_nothing(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        intruder = await make_user("intruder@example.com")
        project = await _create_project(client, auth_headers(owner))

        response = await client.post(
            "/api/tasks",
            json={"title": "Sneaky", "projectId": project["id"]},
            headers=auth_headers(intruder),
        )
        assert response.status_code == 404

        tasks = (await client.get(f"/api/projects/{project['id']}/tasks", headers=auth_headers(owner))).json()
        assert tasks == []

    @pytest.mark.asyncio
    async def test_unknown_assignee_is_404(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        response = await client.post(
            "/api/tasks",
            json={"title": "Ghost", "projectId": project["id"], "assigneeId": str(uuid.uuid4())},
            headers=auth_headers(owner),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_past_due_date_is_400(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        response = await client.post(
            "/api/tasks",
            json={
                "title": "Late",
                "projectId": project["id"],
                "dueDate": (date.today() - timedelta(days=1)).isoformat(),
            },
            headers=auth_headers(owner),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_anonymous_is_401(self, client):
        response = await client.post("/api/tasks", json={"title": "Nope", "projectId": str(uuid.uuid4())})
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


class TestTaskVisibility:
    @pytest.mark.asyncio
    async def test_project_task_listing(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        other_project = await _create_project(client, auth_headers(owner), name="Other")
        await _create_task(client, auth_headers(owner), project["id"], title="A")
        await _create_task(client, auth_headers(owner), project["id"], title="B")
        await _create_task(client, auth_headers(owner), other_project["id"], title="C")

        response = await client.get(f"/api/projects/{project['id']}/tasks", headers=auth_headers(owner))
        assert response.status_code == 200
        assert sorted(t["title"] for t in response.json()) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_project_task_listing_hidden_from_others(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        other = await make_user("other@example.com")
        project = await _create_project(client, auth_headers(owner))

        response = await client.get(f"/api/projects/{project['id']}/tasks", headers=auth_headers(other))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_assignee_sees_but_cannot_delete(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        assignee = await make_user("assignee@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"], assigneeId=str(assignee.id))

        response = await client.get(f"/api/tasks/{task['id']}", headers=auth_headers(assignee))
        assert response.status_code == 200
        assert response.json()["id"] == task["id"]

        assigned = (await client.get("/api/tasks/assigned", headers=auth_headers(assignee))).json()
        assert [t["id"] for t in assigned] == [task["id"]]

        response = await client.delete(f"/api/tasks/{task['id']}", headers=auth_headers(assignee))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

        response = await client.get(f"/api/tasks/{task['id']}", headers=auth_headers(owner))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_stranger_gets_404(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        stranger = await make_user("stranger@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"])

        response = await client.get(f"/api/tasks/{task['id']}", headers=auth_headers(stranger))
        assert response.status_code == 404
        response = await client.delete(f"/api/tasks/{task['id']}", headers=auth_headers(stranger))
        assert response.status_code == 404
        response = await client.put(
            f"/api/tasks/{task['id']}",
            json={"title": "Mine now", "projectId": project["id"]},
            headers=auth_headers(stranger),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_assigned_list_spans_projects(self, client, make_user, auth_headers):
        alice = await make_user("alice@example.com")
        bob = await make_user("bob@example.com")
        alice_project = await _create_project(client, auth_headers(alice), name="Alice work")
        bob_project = await _create_project(client, auth_headers(bob), name="Bob work")
        await _create_task(client, auth_headers(alice), alice_project["id"], title="Own")
        await _create_task(client, auth_headers(bob), bob_project["id"], title="Delegated", assigneeId=str(alice.id))
        await _create_task(client, auth_headers(bob), bob_project["id"], title="Bob only")

        assigned = (await client.get("/api/tasks/assigned", headers=auth_headers(alice))).json()
        assert sorted(t["title"] for t in assigned) == ["Delegated", "Own"]

    @pytest.mark.asyncio
    async def test_missing_task_404(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        response = await client.get(f"/api/tasks/{uuid.uuid4()}", headers=auth_headers(owner))
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------


class TestUpdateTask:
    @pytest.mark.asyncio
    async def test_owner_updates_every_field(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        helper = await make_user("helper@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"], description="draft")

        response = await client.put(
            f"/api/tasks/{task['id']}",
            json={
                "title": "Write final report",
                "description": "final",
                "status": "DONE",
                "dueDate": "2030-01-31",
                "projectId": project["id"],
                "assigneeId": str(helper.id),
            },
            headers=auth_headers(owner),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Write final report"
        assert data["description"] == "final"
        assert data["status"] == "DONE"
        assert data["dueDate"] == "2030-01-31"
        assert data["assigneeId"] == str(helper.id)

    @pytest.mark.asyncio
    async def test_assignee_can_update(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        assignee = await make_user("assignee@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"], assigneeId=str(assignee.id))

        response = await client.put(
            f"/api/tasks/{task['id']}",
            json={
                "title": task["title"],
                "status": "IN_PROGRESS",
                "projectId": project["id"],
                "assigneeId": str(assignee.id),
            },
            headers=auth_headers(assignee),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "IN_PROGRESS"

    @pytest.mark.asyncio
    async def test_omitted_assignee_unassigns(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"])

        response = await client.put(
            f"/api/tasks/{task['id']}",
            json={"title": task["title"], "projectId": project["id"]},
            headers=auth_headers(owner),
        )
        assert response.status_code == 200
        assert response.json()["assigneeId"] is None
        assert response.json()["assigneeName"] is None

    @pytest.mark.asyncio
    async def test_unknown_assignee_leaves_task_unchanged(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"])

        response = await client.put(
            f"/api/tasks/{task['id']}",
            json={
                "title": "Changed title",
                "projectId": project["id"],
                "assigneeId": str(uuid.uuid4()),
            },
            headers=auth_headers(owner),
        )
        assert response.status_code == 404

        current = (await client.get(f"/api/tasks/{task['id']}", headers=auth_headers(owner))).json()
        assert current["title"] == "Write report"
        assert current["assigneeId"] == str(owner.id)

    @pytest.mark.asyncio
    async def test_move_to_foreign_project_is_404(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        other = await make_user("other@example.com")
        project = await _create_project(client, auth_headers(owner))
        foreign = await _create_project(client, auth_headers(other), name="Foreign")
        task = await _create_task(client, auth_headers(owner), project["id"])

        response = await client.put(
            f"/api/tasks/{task['id']}",
            json={"title": task["title"], "projectId": foreign["id"]},
            headers=auth_headers(owner),
        )
        assert response.status_code == 404

        current = (await client.get(f"/api/tasks/{task['id']}", headers=auth_headers(owner))).json()
        assert current["projectId"] == project["id"]

    @pytest.mark.asyncio
    async def test_move_between_owned_projects(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        first = await _create_project(client, auth_headers(owner), name="First")
        second = await _create_project(client, auth_headers(owner), name="Second")
        task = await _create_task(client, auth_headers(owner), first["id"])

        response = await client.put(
            f"/api/tasks/{task['id']}",
            json={"title": task["title"], "projectId": second["id"], "assigneeId": str(owner.id)},
            headers=auth_headers(owner),
        )
        assert response.status_code == 200
        assert response.json()["projectName"] == "Second"

    @pytest.mark.asyncio
    async def test_missing_project_id_is_400(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"])

        response = await client.put(
            f"/api/tasks/{task['id']}", json={"title": "No project"}, headers=auth_headers(owner)
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_repeated_update_is_idempotent(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"])
        body = {
            "title": "Stable",
            "description": "same",
            "status": "IN_PROGRESS",
            "projectId": project["id"],
            "assigneeId": str(owner.id),
        }

        first = (await client.put(f"/api/tasks/{task['id']}", json=body, headers=auth_headers(owner))).json()
        second = (await client.put(f"/api/tasks/{task['id']}", json=body, headers=auth_headers(owner))).json()

        ignored = {"updatedAt", "createdAt"}
        assert {k: v for k, v in first.items() if k not in ignored} == {
            k: v for k, v in second.items() if k not in ignored
        }

    @pytest.mark.asyncio
    async def test_update_keeps_created_at_and_advances_updated_at(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"])
        body = {"title": task["title"], "projectId": project["id"], "assigneeId": str(owner.id)}

        first = (await client.put(f"/api/tasks/{task['id']}", json=body, headers=auth_headers(owner))).json()
        second = (await client.put(f"/api/tasks/{task['id']}", json=body, headers=auth_headers(owner))).json()

        assert _ts(first["createdAt"]) == _ts(task["createdAt"])
        assert _ts(second["createdAt"]) == _ts(task["createdAt"])
        assert _ts(first["updatedAt"]) > _ts(task["updatedAt"])
        assert _ts(second["updatedAt"]) > _ts(first["updatedAt"])


class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_owner_deletes(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        task = await _create_task(client, auth_headers(owner), project["id"])

        response = await client.delete(f"/api/tasks/{task['id']}", headers=auth_headers(owner))
        assert response.status_code == 204

        response = await client.get(f"/api/tasks/{task['id']}", headers=auth_headers(owner))
        assert response.status_code == 404

        listed = (await client.get(f"/api/projects/{project['id']}", headers=auth_headers(owner))).json()
        assert listed["taskCount"] == 0


class TestNonV4Identifiers:
    @pytest.mark.asyncio
    async def test_unknown_uuid1_project_is_404(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        response = await client.post(
            "/api/tasks",
            json={"title": "Elsewhere", "projectId": str(uuid.uuid1())},
            headers=auth_headers(owner),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_uuid1_assignee_is_404(self, client, make_user, auth_headers):
        owner = await make_user("owner@example.com")
        project = await _create_project(client, auth_headers(owner))
        response = await client.post(
            "/api/tasks",
            json={"title": "Nobody", "projectId": project["id"], "assigneeId": str(uuid.uuid1())},
            headers=auth_headers(owner),
        )
        assert response.status_code == 404

"""Tests for the task abilities."""

import pytest
from conftest import ADMIN_ID, MEMBER_ID, OUTSIDER_ID, run

from mcp_adapters.fluentboards.tasks import Tasks


@pytest.fixture
def tasks(registry, backend):
    return Tasks(registry, backend)


@pytest.fixture
def task(backend, board, stages):
    return backend.create_task(
        board["id"], {"title": "Write docs", "stage_id": stages[0]["id"], "position": 1}
    )


def _positions(backend, stage):
    return [(t["title"], t["position"]) for t in sorted(backend.list_tasks(stage_id=stage["id"]), key=lambda t: t["position"])]


class TestListAndGet:
    def test_list_with_search(self, tasks, registry, backend, board, stages, task):
        backend.create_task(board["id"], {"title": "Fix bug", "description": "crash in docs build", "stage_id": stages[1]["id"]})
        backend.create_task(board["id"], {"title": "Ship", "stage_id": stages[1]["id"]})
        result = run(registry, "list-tasks", board_id=board["id"], search="DOCS")
        assert result["message"] == "Tasks retrieved successfully"
        assert sorted(t["title"] for t in result["data"]["tasks"]) == ["Fix bug", "Write docs"]
        by_stage = run(registry, "list-tasks", board_id=board["id"], stage_id=stages[1]["id"])
        assert by_stage["data"]["total"] == 2

    def test_get_includes_children(self, tasks, registry, backend, board, task):
        backend.create_comment(task["id"], {"content": "hi"})
        label = backend.create_label(board["id"], {"title": "Bug"})
        backend.attach_label(task["id"], label["id"])
        detail = run(registry, "get-task", board_id=board["id"], task_id=task["id"])["data"]["task"]
        assert [c["content"] for c in detail["comments"]] == ["hi"]
        assert [l["title"] for l in detail["labels"]] == ["Bug"]
        assert detail["attachments"] == []

    def test_task_in_other_board(self, tasks, registry, backend, board, task):
        other = backend.create_board({"title": "Other", "created_by": ADMIN_ID})
        result = run(registry, "get-task", board_id=other["id"], task_id=task["id"])
        assert result["error"] == {
            "code": "task_not_found",
            "message": "Task not found in specified board",
        }

    def test_missing_task(self, tasks, registry, board):
        result = run(registry, "get-task", board_id=board["id"], task_id=404)
        assert result["error"] == {"code": "task_not_found", "message": "Task not found"}

    def test_invalid_ids(self, tasks, registry, board):
        assert run(registry, "get-task", board_id=-1, task_id=1)["error"]["code"] == "invalid_board_id"
        assert run(registry, "get-task", board_id=board["id"], task_id="x")["error"]["code"] == "invalid_task_id"


class TestCreateUpdateDelete:
    def test_create_appends_and_labels(self, tasks, registry, backend, board, stages, task):
        label = backend.create_label(board["id"], {"title": "Docs"})
        result = run(
            registry,
            "create-task",
            board_id=board["id"],
            stage_id=stages[0]["id"],
            title="Second",
            priority="high",
            assignees=[MEMBER_ID, "junk"],
            labels=[label["id"]],
        )
        assert result["message"] == "Task created successfully"
        created = result["data"]["task"]
        assert created["position"] == 2
        assert created["priority"] == "high"
        assert created["assignees"] == [MEMBER_ID]
        assert created["created_by"] == ADMIN_ID
        assert [l["id"] for l in created["labels"]] == [label["id"]]

    def test_create_requires_title(self, tasks, registry, board, stages):
        result = run(registry, "create-task", board_id=board["id"], stage_id=stages[0]["id"])
        assert result["error"] == {"code": "title_required", "message": "Task title is required"}

    def test_create_rejects_foreign_stage(self, tasks, registry, backend, board):
        other = backend.create_board({"title": "Other", "created_by": ADMIN_ID})
        foreign = backend.create_stage(other["id"], {"title": "X"})
        result = run(registry, "create-task", board_id=board["id"], stage_id=foreign["id"], title="t")
        assert result["error"]["code"] == "invalid_stage"

    def test_update(self, tasks, registry, backend, board, stages, task):
        result = run(
            registry,
            "update-task",
            board_id=board["id"],
            task_id=task["id"],
            title="Docs v2",
            stage_id=stages[2]["id"],
            due_at="",
            assignees=[ADMIN_ID],
        )
        assert result["data"]["updated_fields"] == ["assignees", "due_at", "stage_id", "title"]
        stored = backend.get_task(task["id"])
        assert stored["stage_id"] == stages[2]["id"]
        assert stored["due_at"] is None

    def test_delete_requires_confirmation(self, tasks, registry, backend, board, task):
        result = run(registry, "delete-task", board_id=board["id"], task_id=task["id"])
        assert result["error"]["code"] == "confirmation_required"
        assert backend.get_task(task["id"]) is not None

    def test_delete_renumbers(self, tasks, registry, backend, board, stages, task):
        backend.create_task(board["id"], {"title": "b", "stage_id": stages[0]["id"], "position": 2})
        result = run(registry, "delete-task", board_id=board["id"], task_id=task["id"], confirm_delete=True)
        assert result["data"]["task_title"] == "Write docs"
        assert _positions(backend, stages[0]) == [("b", 1)]


class TestMoveAndClone:
    def test_move_to_other_stage(self, tasks, registry, backend, board, stages, task):
        backend.create_task(board["id"], {"title": "x", "stage_id": stages[1]["id"], "position": 1})
        result = run(
            registry,
            "move-task",
            board_id=board["id"],
            task_id=task["id"],
            new_stage_id=stages[1]["id"],
            new_index=1,
        )
        assert result["message"] == "Task moved successfully"
        assert _positions(backend, stages[1]) == [("Write docs", 1), ("x", 2)]

    def test_reorder_within_stage(self, tasks, registry, backend, board, stages, task):
        backend.create_task(board["id"], {"title": "b", "stage_id": stages[0]["id"], "position": 2})
        run(registry, "move-task", board_id=board["id"], task_id=task["id"], new_stage_id=stages[0]["id"], new_index=2)
        assert _positions(backend, stages[0]) == [("b", 1), ("Write docs", 2)]

    def test_move_to_inaccessible_board(self, tasks, registry, backend, board, stages, task):
        foreign = backend.create_board({"title": "Private", "created_by": OUTSIDER_ID})
        backend.act_as(MEMBER_ID)
        result = run(
            registry,
            "move-task",
            board_id=board["id"],
            task_id=task["id"],
            new_stage_id=stages[0]["id"],
            new_board_id=foreign["id"],
        )
        assert result["error"] == {"code": "access_denied", "message": "Access denied to target board"}

    def test_clone_copies_labels_and_assignees(self, tasks, registry, backend, board, stages, task):
        label = backend.create_label(board["id"], {"title": "Bug"})
        backend.attach_label(task["id"], label["id"])
        backend.update_task(task["id"], {"assignees": [MEMBER_ID]})
        result = run(
            registry, "clone-task", board_id=board["id"], task_id=task["id"], title="Copy", stage_id=stages[2]["id"]
        )
        clone = result["data"]["task"]
        assert result["data"]["original_task_id"] == task["id"]
        assert clone["assignees"] == [MEMBER_ID]
        assert [l["title"] for l in clone["labels"]] == ["Bug"]

    def test_clone_without_extras(self, tasks, registry, backend, board, stages, task):
        backend.update_task(task["id"], {"assignees": [MEMBER_ID]})
        result = run(
            registry,
            "clone-task",
            board_id=board["id"],
            task_id=task["id"],
            title="Bare",
            stage_id=stages[0]["id"],
            assignee=False,
            label=False,
        )
        assert result["data"]["task"]["assignees"] == []
        assert result["data"]["task"]["position"] == 2


class TestArchiveAndStatus:
    def test_archive_then_restore(self, tasks, registry, backend, board, task):
        result = run(registry, "archive-task", board_id=board["id"], task_id=task["id"])
        assert result["data"]["archived_at"]
        assert backend.list_tasks(board_id=board["id"]) == []
        restored = run(registry, "restore-task", board_id=board["id"], task_id=task["id"])
        assert restored["data"]["task"]["archived_at"] is None

    def test_restore_active_task(self, tasks, registry, board, task):
        result = run(registry, "restore-task", board_id=board["id"], task_id=task["id"])
        assert result["error"] == {"code": "task_not_found", "message": "Archived task not found"}

    def test_change_status(self, tasks, registry, backend, board, stages, task):
        result = run(registry, "change-task-status", board_id=board["id"], task_id=task["id"], stage_id=stages[2]["id"])
        assert result["data"]["old_stage_id"] == stages[0]["id"]
        assert result["data"]["new_stage_id"] == stages[2]["id"]
        assert backend.activities[-1]["action"] == "task_stage_changed"


class TestSelfAssignment:
    def test_assign_and_detach(self, tasks, registry, backend, board, task):
        backend.act_as(MEMBER_ID)
        assigned = run(registry, "assign-yourself-to-task", board_id=board["id"], task_id=task["id"])
        assert assigned["data"]["assignees"] == [MEMBER_ID]
        again = run(registry, "assign-yourself-to-task", board_id=board["id"], task_id=task["id"])
        assert again["error"]["code"] == "already_assigned"
        detached = run(registry, "detach-yourself-from-task", board_id=board["id"], task_id=task["id"])
        assert detached["message"] == "You have been removed from the task"
        assert backend.get_task(task["id"])["assignees"] == []

    def test_detach_when_not_assigned(self, tasks, registry, board, task):
        result = run(registry, "detach-yourself-from-task", board_id=board["id"], task_id=task["id"])
        assert result["error"] == {"code": "not_assigned", "message": "You are not assigned to this task"}

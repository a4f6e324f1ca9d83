"""Task abilities: CRUD, moves between stages and boards, assignment."""

from mcp_adapters._utils import _positive_int, _text
from mcp_adapters.fluentboards._base import (
    BaseAbility,
    boolean,
    integer,
    now,
    object_schema,
    string,
)

PRIORITIES = ("low", "medium", "high")
_TEXT_FIELDS = ("title", "description", "priority", "status", "reminder_type", "scope", "source", "type")
_DATE_FIELDS = ("due_at", "started_at", "remind_at")

_BOARD_ID = integer("Board ID")
_TASK_ID = integer("Task ID")


def _task_fields():
    return {
        "title": string("Task title"),
        "description": string("Task description"),
        "priority": string("Task priority", enum=list(PRIORITIES)),
        "status": string("Task status"),
        "due_at": string("Due date (YYYY-MM-DD HH:MM:SS)"),
        "started_at": string("Start date (YYYY-MM-DD HH:MM:SS)"),
        "remind_at": string("Reminder date (YYYY-MM-DD HH:MM:SS)"),
        "assignees": {"type": "array", "items": {"type": "integer"}, "description": "User IDs"},
        "labels": {"type": "array", "items": {"type": "integer"}, "description": "Label IDs"},
    }


class Tasks(BaseAbility):
    subcategory = "tasks"

    def register_abilities(self):
        board_and_task = object_schema(
            {"board_id": _BOARD_ID, "task_id": _TASK_ID}, required=["board_id", "task_id"]
        )
        self.register(
            "list-tasks",
            self.execute_list_tasks,
            label="List board tasks",
            description="List active tasks of a board, optionally by stage or search text",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "stage_id": integer("Only tasks in this stage"),
                    "search": string("Match title or description"),
                },
                required=["board_id"],
            ),
            error_code="list_failed",
            failure="retrieve tasks",
        )
        self.register(
            "get-task",
            self.execute_get_task,
            label="Get task",
            description="Get a task with its labels, comments and attachments",
            input_schema=board_and_task,
            error_code="get_failed",
            failure="retrieve task",
        )
        self.register(
            "create-task",
            self.execute_create_task,
            label="Create task",
            description="Create a task in a board stage",
            input_schema=object_schema(
                {"board_id": _BOARD_ID, "stage_id": integer("Stage ID"), **_task_fields()},
                required=["board_id", "stage_id", "title"],
            ),
            permission=self.manage_permission,
            error_code="create_failed",
            failure="create task",
        )
        self.register(
            "update-task",
            self.execute_update_task,
            label="Update task",
            description="Update task fields, stage or assignees",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "task_id": _TASK_ID,
                    "stage_id": integer("Move to this stage"),
                    **_task_fields(),
                },
                required=["board_id", "task_id"],
            ),
            permission=self.manage_permission,
            error_code="update_failed",
            failure="update task",
        )
        self.register(
            "delete-task",
            self.execute_delete_task,
            label="Delete task",
            description="Permanently delete a task and its comments and attachments",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "task_id": _TASK_ID,
                    "confirm_delete": boolean("Must be true to confirm deletion"),
                },
                required=["board_id", "task_id", "confirm_delete"],
            ),
            permission=self.manage_permission,
            error_code="delete_failed",
            failure="delete task",
        )
        self.register(
            "move-task",
            self.execute_move_task,
            label="Move task",
            description="Move a task to another stage, position or board",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "task_id": _TASK_ID,
                    "new_stage_id": integer("Destination stage ID"),
                    "new_index": integer("Position in the destination stage", minimum=1),
                    "new_board_id": integer("Destination board ID; defaults to the same board"),
                },
                required=["board_id", "task_id", "new_stage_id"],
            ),
            permission=self.manage_permission,
            error_code="move_failed",
            failure="move task",
        )
        self.register(
            "clone-task",
            self.execute_clone_task,
            label="Clone task",
            description="Copy a task into a stage, optionally on another board",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "task_id": _TASK_ID,
                    "title": string("Title for the clone"),
                    "stage_id": integer("Stage for the clone"),
                    "target_board_id": integer("Board for the clone; defaults to the same board"),
                    "assignee": boolean("Copy assignees", default=True),
                    "label": boolean("Copy labels", default=True),
                },
                required=["board_id", "task_id", "title", "stage_id"],
            ),
            permission=self.manage_permission,
            error_code="clone_failed",
            failure="clone task",
        )
        self.register(
            "archive-task",
            self.execute_archive_task,
            label="Archive task",
            description="Archive a task",
            input_schema=board_and_task,
            permission=self.manage_permission,
            error_code="archive_failed",
            failure="archive task",
        )
        self.register(
            "restore-task",
            self.execute_restore_task,
            label="Restore task",
            description="Restore an archived task",
            input_schema=board_and_task,
            permission=self.manage_permission,
            error_code="restore_failed",
            failure="restore task",
        )
        self.register(
            "change-task-status",
            self.execute_change_task_status,
            label="Change task status",
            description="Move a task to another stage of the same board",
            input_schema=object_schema(
                {"board_id": _BOARD_ID, "task_id": _TASK_ID, "stage_id": integer("New stage ID")},
                required=["board_id", "task_id", "stage_id"],
            ),
            permission=self.manage_permission,
            error_code="status_change_failed",
            failure="change task status",
        )
        self.register(
            "assign-yourself-to-task",
            self.execute_assign_yourself_to_task,
            label="Assign yourself to task",
            description="Add the current user to a task's assignees",
            input_schema=board_and_task,
            error_code="assign_failed",
            failure="assign yourself to task",
        )
        self.register(
            "detach-yourself-from-task",
            self.execute_detach_yourself_from_task,
            label="Detach yourself from task",
            description="Remove the current user from a task's assignees",
            input_schema=board_and_task,
            error_code="detach_failed",
            failure="remove yourself from task",
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _board_and_task(self, args):
        """Validate ids, board access and task membership."""
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return None, None, self.get_error_response("Invalid board ID", "invalid_board_id")
        task_id = _positive_int(args.get("task_id"))
        if task_id is None:
            return None, None, self.get_error_response("Invalid task ID", "invalid_task_id")
        board, error = self._accessible_board(board_id)
        if error:
            return None, None, error
        task, error = self._task_in_board(task_id, board_id)
        if error:
            return None, None, error
        return board, task, None

    def _stage_of(self, stage_id, board_id):
        stage = self.backend.get_stage(stage_id) if stage_id else None
        if not stage or stage.get("board_id") != board_id:
            return None
        return stage

    def _next_position(self, board_id, stage_id):
        tasks = self.backend.list_tasks(board_id=board_id, stage_id=stage_id)
        return max((t.get("position") or 0 for t in tasks), default=0) + 1

    def _renumber(self, board_id, stage_id, task_id=None, index=None):
        """Compact positions in a stage, optionally placing ``task_id`` at ``index``."""
        tasks = sorted(
            self.backend.list_tasks(board_id=board_id, stage_id=stage_id),
            key=lambda t: t.get("position") or 0,
        )
        if task_id is not None:
            moving = [t for t in tasks if t["id"] == task_id]
            tasks = [t for t in tasks if t["id"] != task_id]
            if moving:
                slot = max(0, min(len(tasks), (index or len(tasks) + 1) - 1))
                tasks.insert(slot, moving[0])
        for position, task in enumerate(tasks, start=1):
            if task.get("position") != position:
                self.backend.update_task(task["id"], {"position": position})

    def _detail(self, task):
        detail = dict(task)
        detail["labels"] = self.backend.task_labels(task["id"])
        return detail

    @staticmethod
    def _fields(args):
        data = {}
        for key in _TEXT_FIELDS:
            if args.get(key):
                data[key] = _text(args[key])
        for key in _DATE_FIELDS:
            if key in args:
                data[key] = _text(args[key]) or None
        return data

    # ---------------------------------------------------------------------------
    # Execute callbacks
    # ---------------------------------------------------------------------------

    def execute_list_tasks(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        stage_id = _positive_int(args.get("stage_id"))
        search = _text(args.get("search")).lower()
        tasks = self.backend.list_tasks(board_id=board_id, stage_id=stage_id)
        if search:
            tasks = [
                t
                for t in tasks
                if search in (t.get("title") or "").lower()
                or search in (t.get("description") or "").lower()
            ]
        tasks = sorted(tasks, key=lambda t: t.get("position") or 0)
        return self.get_success_response(
            {"tasks": tasks, "total": len(tasks)}, "Tasks retrieved successfully"
        )

    def execute_get_task(self, args):
        board, task, error = self._board_and_task(args)
        if error:
            return error
        detail = self._detail(task)
        detail["comments"] = self.backend.list_comments(task["id"])
        detail["attachments"] = self.backend.list_attachments(task["id"])
        return self.get_success_response({"task": detail}, "Task retrieved successfully")

    def execute_create_task(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        title = _text(args.get("title"))
        if not title:
            return self.get_error_response("Task title is required", "title_required")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        stage_id = _positive_int(args.get("stage_id"))
        if not self._stage_of(stage_id, board_id):
            return self.get_error_response("Invalid stage for this board", "invalid_stage")
        data = self._fields(args)
        data.update(
            {
                "title": title,
                "stage_id": stage_id,
                "position": self._next_position(board_id, stage_id),
                "created_by": self.current_user().id,
                "assignees": [
                    uid for uid in (_positive_int(v) for v in args.get("assignees") or []) if uid
                ],
            }
        )
        task = self.backend.create_task(board_id, data)
        for label_id in args.get("labels") or []:
            if _positive_int(label_id):
                self.backend.attach_label(task["id"], _positive_int(label_id))
        return self.get_success_response({"task": self._detail(task)}, "Task created successfully")

    def execute_update_task(self, args):
        board, task, error = self._board_and_task(args)
        if error:
            return error
        update = self._fields(args)
        if args.get("stage_id"):
            stage_id = _positive_int(args["stage_id"])
            if not self._stage_of(stage_id, board["id"]):
                return self.get_error_response("Invalid stage for this board", "invalid_stage")
            update["stage_id"] = stage_id
        if isinstance(args.get("assignees"), list):
            update["assignees"] = [
                uid for uid in (_positive_int(v) for v in args["assignees"]) if uid
            ]
        update["updated_at"] = now()
        task = self.backend.update_task(task["id"], update)
        return self.get_success_response(
            {"task": self._detail(task), "updated_fields": sorted(k for k in update if k != "updated_at")},
            "Task updated successfully",
        )

    def execute_delete_task(self, args):
        if not args.get("confirm_delete"):
            return self.get_error_response("Deletion not confirmed", "confirmation_required")
        board, task, error = self._board_and_task(args)
        if error:
            return error
        self.backend.delete_task(task["id"])
        self._renumber(board["id"], task.get("stage_id"))
        return self.get_success_response(
            {"task_id": task["id"], "task_title": task.get("title"), "deleted_at": now()},
            "Task deleted successfully",
        )

    def execute_move_task(self, args):
        board, task, error = self._board_and_task(args)
        if error:
            return error
        board_id = board["id"]
        new_board_id = _positive_int(args.get("new_board_id")) or board_id
        if new_board_id != board_id:
            target, error = self._accessible_board(new_board_id)
            if error:
                return self.get_error_response("Access denied to target board", "access_denied")
        new_stage_id = _positive_int(args.get("new_stage_id"))
        if not self._stage_of(new_stage_id, new_board_id):
            return self.get_error_response("Invalid stage for target board", "invalid_stage")
        new_index = _positive_int(args.get("new_index"))
        old_stage_id = task.get("stage_id")
        if old_stage_id == new_stage_id and new_board_id == board_id:
            self._renumber(board_id, new_stage_id, task["id"], new_index)
        else:
            self.backend.update_task(
                task["id"],
                {
                    "board_id": new_board_id,
                    "stage_id": new_stage_id,
                    "position": new_index or self._next_position(new_board_id, new_stage_id),
                    "updated_at": now(),
                },
            )
            self._renumber(board_id, old_stage_id)
            self._renumber(new_board_id, new_stage_id, task["id"], new_index)
        return self.get_success_response(
            {"task": self._detail(self.backend.get_task(task["id"]))}, "Task moved successfully"
        )

    def execute_clone_task(self, args):
        board, task, error = self._board_and_task(args)
        if error:
            return error
        title = _text(args.get("title"))
        if not title:
            return self.get_error_response("Task title is required", "title_required")
        target_board_id = _positive_int(args.get("target_board_id")) or board["id"]
        if target_board_id != board["id"]:
            target, error = self._accessible_board(target_board_id)
            if error:
                return self.get_error_response("Access denied to target board", "access_denied")
        stage_id = _positive_int(args.get("stage_id"))
        if not self._stage_of(stage_id, target_board_id):
            return self.get_error_response("Invalid stage for target board", "invalid_stage")
        data = {
            key: value
            for key, value in task.items()
            if key not in ("id", "board_id", "created_at", "updated_at", "archived_at")
        }
        data.update(
            {
                "title": title,
                "stage_id": stage_id,
                "position": self._next_position(target_board_id, stage_id),
                "created_by": self.current_user().id,
                "assignees": list(task.get("assignees") or []) if args.get("assignee", True) else [],
            }
        )
        clone = self.backend.create_task(target_board_id, data)
        if args.get("label", True):
            for label in self.backend.task_labels(task["id"]):
                self.backend.attach_label(clone["id"], label["id"])
        return self.get_success_response(
            {"task": self._detail(clone), "original_task_id": task["id"]},
            "Task cloned successfully",
        )

    def execute_archive_task(self, args):
        board, task, error = self._board_and_task(args)
        if error:
            return error
        stamp = now()
        self.backend.update_task(task["id"], {"archived_at": stamp, "updated_at": stamp})
        return self.get_success_response(
            {"task_id": task["id"], "archived_at": stamp}, "Task archived successfully"
        )

    def execute_restore_task(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        task = self.backend.get_task(_positive_int(args.get("task_id")) or 0)
        if not task or task.get("board_id") != board_id or not task.get("archived_at"):
            return self.get_error_response("Archived task not found", "task_not_found")
        task = self.backend.update_task(task["id"], {"archived_at": None, "updated_at": now()})
        return self.get_success_response({"task": self._detail(task)}, "Task restored successfully")

    def execute_change_task_status(self, args):
        board, task, error = self._board_and_task(args)
        if error:
            return error
        stage_id = _positive_int(args.get("stage_id"))
        if not self._stage_of(stage_id, board["id"]):
            return self.get_error_response("Invalid stage for this board", "invalid_stage")
        old_stage_id = task.get("stage_id")
        task = self.backend.update_task(task["id"], {"stage_id": stage_id, "updated_at": now()})
        if old_stage_id != stage_id:
            self._renumber(board["id"], old_stage_id)
            self._renumber(board["id"], stage_id)
        return self.get_success_response(
            {"task": self._detail(task), "old_stage_id": old_stage_id, "new_stage_id": stage_id},
            "Task status changed successfully",
        )

    def execute_assign_yourself_to_task(self, args):
        board, task, error = self._board_and_task(args)
        if error:
            return error
        user_id = self.current_user().id
        assignees = list(task.get("assignees") or [])
        if user_id in assignees:
            return self.get_error_response(
                "You are already assigned to this task", "already_assigned"
            )
        task = self.backend.update_task(task["id"], {"assignees": assignees + [user_id]})
        return self.get_success_response(
            {"task_id": task["id"], "user_id": user_id, "assignees": task.get("assignees")},
            "You have been assigned to the task",
        )

    def execute_detach_yourself_from_task(self, args):
        board, task, error = self._board_and_task(args)
        if error:
            return error
        user_id = self.current_user().id
        assignees = list(task.get("assignees") or [])
        if user_id not in assignees:
            return self.get_error_response("You are not assigned to this task", "not_assigned")
        assignees.remove(user_id)
        task = self.backend.update_task(task["id"], {"assignees": assignees})
        return self.get_success_response(
            {"task_id": task["id"], "user_id": user_id, "assignees": task.get("assignees")},
            "You have been removed from the task",
        )

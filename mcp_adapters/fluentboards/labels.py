"""Label abilities: board labels and their assignment to tasks."""

import re

from mcp_adapters._utils import _positive_int, _text
from mcp_adapters.fluentboards._base import (
    BaseAbility,
    boolean,
    integer,
    now,
    object_schema,
    string,
)

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")

_BOARD_ID = integer("Board ID")
_TASK_ID = integer("Task ID")
_LABEL_ID = integer("Label ID")


def _hex(value):
    """Return ``value`` when it is a ``#rgb``/``#rrggbb`` color, else ``""``."""
    value = _text(value)
    return value if HEX_COLOR.match(value) else ""


def _label_row(label):
    return {
        "id": label["id"],
        "title": label.get("title"),
        "bg_color": label.get("bg_color"),
        "color": label.get("color"),
        "board_id": label.get("board_id"),
    }


class Labels(BaseAbility):
    subcategory = "labels"

    def register_abilities(self):
        task_label = object_schema(
            {"board_id": _BOARD_ID, "task_id": _TASK_ID, "label_id": _LABEL_ID},
            required=["board_id", "task_id", "label_id"],
        )
        self.register(
            "list-labels",
            self.execute_list_labels,
            label="List FluentBoards labels",
            description="List all labels in a board",
            input_schema=object_schema(
                {
                    "board_id": integer("Board ID to list labels from"),
                    "used_only": boolean("Only return labels that are used in tasks", default=False),
                },
                required=["board_id"],
            ),
            error_code="list_failed",
            failure="list labels",
        )
        self.register(
            "create-label",
            self.execute_create_label,
            label="Create FluentBoards label",
            description="Create a label in a board",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "title": string("Label title"),
                    "bg_color": string("Background color as hex code (e.g., #4A9B7F)"),
                    "color": string("Text color as hex code (e.g., #FFFFFF)"),
                },
                required=["board_id", "title", "bg_color", "color"],
            ),
            permission=self.manage_permission,
            error_code="create_failed",
            failure="create label",
        )
        self.register(
            "update-label",
            self.execute_update_label,
            label="Update FluentBoards label",
            description="Update a label's title or colors",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "label_id": _LABEL_ID,
                    "title": string("New label title"),
                    "bg_color": string("New background color"),
                    "color": string("New text color"),
                },
                required=["board_id", "label_id"],
            ),
            permission=self.manage_permission,
            error_code="update_failed",
            failure="update label",
        )
        self.register(
            "delete-label",
            self.execute_delete_label,
            label="Delete FluentBoards label",
            description="Delete a label and detach it from every task",
            input_schema=object_schema(
                {"board_id": _BOARD_ID, "label_id": _LABEL_ID}, required=["board_id", "label_id"]
            ),
            permission=self.manage_permission,
            error_code="delete_failed",
            failure="delete label",
        )
        self.register(
            "add-label-to-task",
            self.execute_add_label_to_task,
            label="Add label to task",
            description="Assign a board label to a task",
            input_schema=task_label,
            permission=self.manage_permission,
            error_code="add_failed",
            failure="add label to task",
        )
        self.register(
            "remove-label-from-task",
            self.execute_remove_label_from_task,
            label="Remove label from task",
            description="Remove a label from a task",
            input_schema=task_label,
            permission=self.manage_permission,
            error_code="remove_failed",
            failure="remove label from task",
        )
        self.register(
            "get-task-labels",
            self.execute_get_task_labels,
            label="Get task labels",
            description="Get the labels assigned to a task",
            input_schema=object_schema(
                {"board_id": _BOARD_ID, "task_id": _TASK_ID}, required=["board_id", "task_id"]
            ),
            error_code="get_failed",
            failure="get task labels",
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _board_label(self, board_id, label_id, message="Label not found"):
        label = self.backend.get_label(label_id)
        if not label or label.get("board_id") != board_id:
            return None, self.get_error_response(message, "label_not_found")
        return label, None

    def _title_taken(self, board_id, title, exclude=None):
        return any(
            label.get("title") == title and label["id"] != exclude
            for label in self.backend.list_labels(board_id)
        )

    def _usage(self, board_id):
        counts = {}
        for task in self.backend.list_tasks(board_id=board_id):
            for label in self.backend.task_labels(task["id"]):
                counts[label["id"]] = counts.get(label["id"], 0) + 1
        return counts

    def _task_label_ids(self, args):
        """Validate the (board, task, label) triple used by the assignment calls."""
        board_id = _positive_int(args.get("board_id"))
        task_id = _positive_int(args.get("task_id"))
        label_id = _positive_int(args.get("label_id"))
        if not (board_id and task_id and label_id):
            return None, None, self.get_error_response(
                "Invalid board, task, or label ID", "invalid_ids"
            )
        board, error = self._accessible_board(board_id)
        if error:
            return None, None, error
        task, error = self._task_in_board(task_id, board_id)
        if error:
            return None, None, error
        label, error = self._board_label(board_id, label_id, "Label not found in this board")
        if error:
            return None, None, error
        return task, label, None

    # ---------------------------------------------------------------------------
    # Execute callbacks
    # ---------------------------------------------------------------------------

    def execute_list_labels(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        used_only = bool(args.get("used_only"))
        usage = self._usage(board_id)
        labels = []
        for label in sorted(self.backend.list_labels(board_id), key=lambda l: l.get("title") or ""):
            count = usage.get(label["id"], 0)
            if used_only and not count:
                continue
            labels.append(dict(_label_row(label), created_at=label.get("created_at"), usage_count=count))
        return self.get_success_response(
            {
                "board_id": board_id,
                "labels": labels,
                "total_labels": len(labels),
                "used_only_filter": used_only,
            },
            "Labels retrieved successfully",
        )

    def execute_create_label(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        title = _text(args.get("title"))
        if not title:
            return self.get_error_response("Label title is required", "title_required")
        bg_color, color = _hex(args.get("bg_color")), _hex(args.get("color"))
        if not bg_color or not color:
            return self.get_error_response(
                "Valid hex colors are required for background and text", "invalid_colors"
            )
        board, error = self._accessible_board(board_id)
        if error:
            return error
        if self._title_taken(board_id, title):
            return self.get_error_response("Label with this title already exists", "label_exists")
        label = self.backend.create_label(
            board_id,
            {
                "title": title,
                "bg_color": bg_color,
                "color": color,
                "created_by": self.current_user().id,
            },
        )
        return self.get_success_response(
            {"label": dict(_label_row(label), created_at=label.get("created_at"))},
            "Label created successfully",
        )

    def execute_update_label(self, args):
        board_id = _positive_int(args.get("board_id"))
        label_id = _positive_int(args.get("label_id"))
        if not (board_id and label_id):
            return self.get_error_response("Invalid board or label ID", "invalid_ids")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        label, error = self._board_label(board_id, label_id)
        if error:
            return error
        update = {}
        if "title" in args:
            title = _text(args["title"])
            if not title:
                return self.get_error_response("Label title cannot be empty", "empty_title")
            if self._title_taken(board_id, title, exclude=label_id):
                return self.get_error_response(
                    "Another label with this title already exists", "title_exists"
                )
            update["title"] = title
        if "bg_color" in args:
            update["bg_color"] = _hex(args["bg_color"])
            if not update["bg_color"]:
                return self.get_error_response("Invalid background color format", "invalid_bg_color")
        if "color" in args:
            update["color"] = _hex(args["color"])
            if not update["color"]:
                return self.get_error_response("Invalid text color format", "invalid_color")
        if not update:
            return self.get_error_response("No fields to update", "no_update_data")
        update["updated_at"] = now()
        label = self.backend.update_label(label_id, update)
        return self.get_success_response(
            {"label": dict(_label_row(label), updated_at=label.get("updated_at"))},
            "Label updated successfully",
        )

    def execute_delete_label(self, args):
        board_id = _positive_int(args.get("board_id"))
        label_id = _positive_int(args.get("label_id"))
        if not (board_id and label_id):
            return self.get_error_response("Invalid board or label ID", "invalid_ids")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        label, error = self._board_label(board_id, label_id)
        if error:
            return error
        usage = self._usage(board_id).get(label_id, 0)
        self.backend.delete_label(label_id)
        return self.get_success_response(
            {
                "label_id": label_id,
                "label_title": label.get("title"),
                "removed_from_tasks": usage,
                "deleted_at": now(),
            },
            "Label deleted successfully",
        )

    def execute_add_label_to_task(self, args):
        task, label, error = self._task_label_ids(args)
        if error:
            return error
        if not self.backend.attach_label(task["id"], label["id"]):
            return self.get_success_response(
                {
                    "task_id": task["id"],
                    "label_id": label["id"],
                    "label_title": label.get("title"),
                    "action": "already_assigned",
                },
                "Label is already assigned to this task",
            )
        return self.get_success_response(
            {"task_id": task["id"], "label": _label_row(label), "action": "assigned"},
            "Label added to task successfully",
        )

    def execute_remove_label_from_task(self, args):
        task, label, error = self._task_label_ids(args)
        if error:
            return error
        if not self.backend.detach_label(task["id"], label["id"]):
            return self.get_success_response(
                {
                    "task_id": task["id"],
                    "label_id": label["id"],
                    "label_title": label.get("title"),
                    "action": "not_assigned",
                },
                "Label is not assigned to this task",
            )
        return self.get_success_response(
            {
                "task_id": task["id"],
                "label_id": label["id"],
                "label_title": label.get("title"),
                "action": "removed",
            },
            "Label removed from task successfully",
        )

    def execute_get_task_labels(self, args):
        board_id = _positive_int(args.get("board_id"))
        task_id = _positive_int(args.get("task_id"))
        if not (board_id and task_id):
            return self.get_error_response("Invalid board or task ID", "invalid_ids")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        task, error = self._task_in_board(task_id, board_id)
        if error:
            return error
        labels = [
            _label_row(label)
            for label in self.backend.task_labels(task_id)
            if label.get("board_id") == board_id
        ]
        return self.get_success_response(
            {"task_id": task_id, "board_id": board_id, "labels": labels, "total_labels": len(labels)},
            "Task labels retrieved successfully",
        )

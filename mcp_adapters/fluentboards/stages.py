"""Stage abilities: board columns, their order, and bulk task moves."""

from mcp_adapters._utils import _positive_int, _text
from mcp_adapters.fluentboards._base import (
    BaseAbility,
    boolean,
    integer,
    now,
    object_schema,
    string,
)

SORTABLE_TASK_FIELDS = ("position", "priority", "due_at", "created_at", "title")
_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}

_BOARD_ID = integer("Board ID")
_STAGE_ID = integer("Stage ID")


def _stage_row(stage, **extra):
    row = {
        "id": stage["id"],
        "title": stage.get("title", ""),
        "description": stage.get("description", ""),
        "position": stage.get("position"),
        "bg_color": stage.get("bg_color"),
        "board_id": stage.get("board_id"),
        "settings": stage.get("settings") or {},
        "created_at": stage.get("created_at"),
        "updated_at": stage.get("updated_at"),
        "archived_at": stage.get("archived_at"),
    }
    row.update(extra)
    return row


def _sort_key(field):
    """Sort key that puts missing values last and ranks priorities."""

    def key(task):
        value = task.get(field)
        if field == "priority":
            value = _PRIORITY_RANK.get(value, len(_PRIORITY_RANK))
        return (value is None, value if value is not None else 0)

    return key


class Stages(BaseAbility):
    subcategory = "stages"

    def register_abilities(self):
        board_and_stage = object_schema(
            {"board_id": _BOARD_ID, "stage_id": _STAGE_ID}, required=["board_id", "stage_id"]
        )
        self.register(
            "list-stages",
            self.execute_list_stages,
            label="List board stages",
            description="List stages of a board in position order",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "include_archived": boolean("Include archived stages", default=False),
                },
                required=["board_id"],
            ),
            error_code="list_failed",
            failure="list stages",
        )
        self.register(
            "create-stage",
            self.execute_create_stage,
            label="Create board stage",
            description="Add a new stage to a board",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "title": string("Stage title"),
                    "position": integer("Stage position; defaults to after the last stage"),
                    "settings": {"type": "object", "description": "Stage settings"},
                },
                required=["board_id", "title"],
            ),
            permission=self.manage_permission,
            error_code="create_failed",
            failure="create stage",
        )
        self.register(
            "update-stage",
            self.execute_update_stage,
            label="Update board stage",
            description="Update a stage's title, color, position or settings",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "stage_id": _STAGE_ID,
                    "title": string("New stage title"),
                    "bg_color": string("Background color"),
                    "position": integer("New position"),
                    "settings": {"type": "object", "description": "Stage settings"},
                },
                required=["board_id", "stage_id"],
            ),
            permission=self.manage_permission,
            error_code="update_failed",
            failure="update stage",
        )
        self.register(
            "delete-stage",
            self.execute_delete_stage,
            label="Delete board stage",
            description="Archive a stage (stages are archived rather than removed)",
            input_schema=board_and_stage,
            permission=self.manage_permission,
            error_code="archive_failed",
            failure="archive stage",
        )
        self.register(
            "restore-stage",
            self.execute_restore_stage,
            label="Restore board stage",
            description="Restore an archived stage",
            input_schema=board_and_stage,
            permission=self.manage_permission,
            error_code="restore_failed",
            failure="restore stage",
        )
        self.register(
            "reorder-stages",
            self.execute_reorder_stages,
            label="Reorder board stages",
            description="Set stage positions from an ordered list of stage IDs",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "stage_ids": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "Stage IDs in their new order",
                    },
                },
                required=["board_id", "stage_ids"],
            ),
            permission=self.manage_permission,
            error_code="reorder_failed",
            failure="reorder stages",
        )
        self.register(
            "move-all-tasks",
            self.execute_move_all_tasks,
            label="Move all tasks between stages",
            description="Move every active task from one stage to another",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "old_stage_id": integer("Source stage ID"),
                    "new_stage_id": integer("Destination stage ID"),
                },
                required=["board_id", "old_stage_id", "new_stage_id"],
            ),
            permission=self.manage_permission,
            error_code="move_tasks_failed",
            failure="move all tasks",
        )
        self.register(
            "archive-all-tasks",
            self.execute_archive_all_tasks,
            label="Archive all tasks in stage",
            description="Archive every active task in a stage",
            input_schema=board_and_stage,
            permission=self.manage_permission,
            error_code="archive_tasks_failed",
            failure="archive all tasks",
        )
        self.register(
            "get-archived-stages",
            self.execute_get_archived_stages,
            label="Get archived stages",
            description="List archived stages of a board, most recently archived first",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "page": integer("Page number", default=1, minimum=1),
                    "per_page": integer("Stages per page", default=30, minimum=1),
                    "no_pagination": boolean("Return every archived stage", default=False),
                },
                required=["board_id"],
            ),
            error_code="get_archived_failed",
            failure="get archived stages",
        )
        self.register(
            "sort-stage-tasks",
            self.execute_sort_stage_tasks,
            label="Sort tasks in stage",
            description="Renumber task positions in a stage by a sort field",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "stage_id": _STAGE_ID,
                    "order_by": string(
                        "Field to sort by", enum=list(SORTABLE_TASK_FIELDS), default="position"
                    ),
                    "order": string("Sort direction", enum=["asc", "desc"], default="asc"),
                },
                required=["board_id", "stage_id"],
            ),
            permission=self.manage_permission,
            error_code="sort_failed",
            failure="sort stage tasks",
        )
        self.register(
            "get-stage-positions",
            self.execute_get_stage_positions,
            label="Get stage task positions",
            description="Show used and available task positions in a stage",
            input_schema=board_and_stage,
            error_code="get_positions_failed",
            failure="get stage positions",
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _board(self, args):
        """Validate ``board_id`` and access; returns (board_id, error)."""
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return None, self.get_error_response("Invalid board ID", "invalid_board_id")
        board = self.backend.get_board(board_id)
        if not board or not self.can_access_board(board):
            return None, self.get_error_response(
                "Board not found or access denied", "board_access_denied"
            )
        return board_id, None

    def _stage_id(self, args, key="stage_id", label="stage"):
        stage_id = _positive_int(args.get(key))
        if stage_id is None:
            code = "invalid_stage_id" if key == "stage_id" else f"invalid_{key}"
            return None, self.get_error_response(f"Invalid {label} ID", code)
        return stage_id, None

    def _stage_in_board(self, stage_id, board_id, *, active_only=True):
        stage = self.backend.get_stage(stage_id)
        if not stage or stage.get("board_id") != board_id:
            return None
        if active_only and stage.get("archived_at"):
            return None
        return stage

    def _stage_tasks(self, board_id, stage_id):
        return self.backend.list_tasks(board_id=board_id, stage_id=stage_id)

    # ---------------------------------------------------------------------------
    # Execute callbacks
    # ---------------------------------------------------------------------------

    def execute_list_stages(self, args):
        board_id, error = self._board(args)
        if error:
            return error
        include_archived = bool(args.get("include_archived"))
        stages = list(self.backend.list_stages(board_id))
        if include_archived:
            stages += self.backend.list_stages(board_id, archived=True)
        stages.sort(key=lambda s: s.get("position") or 0)
        rows = [
            _stage_row(
                stage,
                tasks_count=len(self._stage_tasks(board_id, stage["id"])),
                is_archived=bool(stage.get("archived_at")),
            )
            for stage in stages
        ]
        return self.get_success_response(
            {
                "stages": rows,
                "total_stages": len(rows),
                "board_id": board_id,
                "include_archived": include_archived,
            },
            "Stages retrieved successfully",
        )

    def execute_create_stage(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        title = _text(args.get("title"))
        if not title:
            return self.get_error_response("Stage title is required", "title_required")
        board_id, error = self._board(args)
        if error:
            return error
        position = _positive_int(args.get("position"))
        if position is None:
            positions = [s.get("position") or 0 for s in self.backend.list_stages(board_id)]
            position = max(positions, default=0) + 1
        stage = self.backend.create_stage(
            board_id,
            {
                "title": title,
                "position": position,
                "settings": args.get("settings") or {},
                "created_by": self.current_user().id,
            },
        )
        return self.get_success_response({"stage": _stage_row(stage)}, "Stage created successfully")

    def execute_update_stage(self, args):
        board_id, error = self._board(args)
        if error:
            return error
        stage_id, error = self._stage_id(args)
        if error:
            return error
        stage = self._stage_in_board(stage_id, board_id, active_only=False)
        if not stage:
            return self.get_error_response("Stage not found", "stage_not_found")
        update = {}
        if args.get("title") is not None:
            title = _text(args["title"])
            if not title:
                return self.get_error_response("Stage title cannot be empty", "title_required")
            update["title"] = title
        if args.get("bg_color") is not None:
            update["bg_color"] = _text(args["bg_color"])
        if _positive_int(args.get("position")) is not None:
            update["position"] = _positive_int(args["position"])
        if args.get("settings") is not None:
            update["settings"] = args["settings"]
        if update:
            stage = self.backend.update_stage(stage_id, update)
        return self.get_success_response(
            {"stage": _stage_row(stage), "updated_fields": sorted(update)},
            "Stage updated successfully",
        )

    def execute_delete_stage(self, args):
        board_id, error = self._board(args)
        if error:
            return error
        stage_id, error = self._stage_id(args)
        if error:
            return error
        stage = self._stage_in_board(stage_id, board_id, active_only=False)
        if not stage:
            return self.get_error_response("Stage not found", "stage_not_found")
        if stage.get("archived_at"):
            return self.get_success_response(
                {
                    "stage_id": stage_id,
                    "stage_title": stage.get("title"),
                    "is_archived": True,
                    "archived_at": stage["archived_at"],
                    "action": "already_archived",
                },
                "Stage is already archived",
            )
        stage = self.backend.update_stage(stage_id, {"archived_at": now()})
        return self.get_success_response(
            {
                "stage_id": stage_id,
                "stage_title": stage.get("title"),
                "is_archived": True,
                "archived_at": stage.get("archived_at"),
                "action": "archived",
            },
            "Stage archived successfully",
        )

    def execute_restore_stage(self, args):
        board_id, error = self._board(args)
        if error:
            return error
        stage_id, error = self._stage_id(args)
        if error:
            return error
        stage = self._stage_in_board(stage_id, board_id, active_only=False)
        if not stage:
            return self.get_error_response("Stage not found", "stage_not_found")
        if not stage.get("archived_at"):
            return self.get_success_response(
                {
                    "stage_id": stage_id,
                    "stage_title": stage.get("title"),
                    "is_archived": False,
                    "action": "not_archived",
                },
                "Stage is not archived",
            )
        positions = [s.get("position") or 0 for s in self.backend.list_stages(board_id)]
        stage = self.backend.update_stage(
            stage_id, {"archived_at": None, "position": max(positions, default=0) + 1}
        )
        return self.get_success_response(
            {
                "stage_id": stage_id,
                "stage_title": stage.get("title"),
                "is_archived": False,
                "position": stage.get("position"),
                "action": "restored",
            },
            "Stage restored successfully",
        )

    def execute_reorder_stages(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        raw_ids = args.get("stage_ids")
        if not raw_ids or not isinstance(raw_ids, list):
            return self.get_error_response("Stage IDs array is required", "stage_ids_required")
        board_id, error = self._board(args)
        if error:
            return error
        stage_ids = [_positive_int(value) for value in raw_ids]
        existing = {s["id"] for s in self.backend.list_stages(board_id)}
        missing = [str(raw) for raw, sid in zip(raw_ids, stage_ids) if sid not in existing]
        if missing:
            return self.get_error_response(
                f"Invalid stage IDs: {', '.join(missing)}", "invalid_stage_ids"
            )
        reordered = []
        for position, stage_id in enumerate(stage_ids, start=1):
            stage = self.backend.update_stage(stage_id, {"position": position})
            reordered.append({"id": stage_id, "title": stage.get("title"), "position": position})
        return self.get_success_response(
            {"board_id": board_id, "reordered_stages": reordered, "total_reordered": len(reordered)},
            "Stages reordered successfully",
        )

    def execute_move_all_tasks(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        old_id, error = self._stage_id(args, "old_stage_id", "old stage")
        if error:
            return error
        new_id, error = self._stage_id(args, "new_stage_id", "new stage")
        if error:
            return error
        if old_id == new_id:
            return self.get_error_response(
                "Source and destination stages cannot be the same", "same_stage_error"
            )
        board_id, error = self._board(args)
        if error:
            return error
        old_stage = self._stage_in_board(old_id, board_id)
        if not old_stage:
            return self.get_error_response("Source stage not found", "old_stage_not_found")
        new_stage = self._stage_in_board(new_id, board_id)
        if not new_stage:
            return self.get_error_response("Destination stage not found", "new_stage_not_found")
        moved = []
        for task in self._stage_tasks(board_id, old_id):
            self.backend.update_task(task["id"], {"stage_id": new_id})
            moved.append(
                {
                    "id": task["id"],
                    "title": task.get("title"),
                    "old_stage_id": old_id,
                    "new_stage_id": new_id,
                }
            )
        return self.get_success_response(
            {
                "board_id": board_id,
                "old_stage": {"id": old_id, "title": old_stage.get("title")},
                "new_stage": {"id": new_id, "title": new_stage.get("title")},
                "moved_tasks": moved,
                "total_moved": len(moved),
            },
            "All tasks moved successfully",
        )

    def execute_archive_all_tasks(self, args):
        board_id, error = self._board(args)
        if error:
            return error
        stage_id, error = self._stage_id(args)
        if error:
            return error
        stage = self._stage_in_board(stage_id, board_id)
        if not stage:
            return self.get_error_response("Stage not found", "stage_not_found")
        archived_at = now()
        archived = []
        for task in self._stage_tasks(board_id, stage_id):
            self.backend.update_task(task["id"], {"archived_at": archived_at})
            archived.append({"id": task["id"], "title": task.get("title"), "archived_at": archived_at})
        return self.get_success_response(
            {
                "board_id": board_id,
                "stage": {"id": stage_id, "title": stage.get("title")},
                "archived_tasks": archived,
                "total_archived": len(archived),
                "archived_at": archived_at,
            },
            "All tasks in stage archived successfully",
        )

    def execute_get_archived_stages(self, args):
        board_id, error = self._board(args)
        if error:
            return error
        stages = sorted(
            self.backend.list_stages(board_id, archived=True),
            key=lambda s: s.get("archived_at") or "",
            reverse=True,
        )
        no_pagination = bool(args.get("no_pagination"))
        page = _positive_int(args.get("page")) or 1
        per_page = _positive_int(args.get("per_page")) or 30
        if not no_pagination:
            start = (page - 1) * per_page
            stages = stages[start : start + per_page]
        data = {
            "archived_stages": [_stage_row(stage) for stage in stages],
            "total_archived": len(stages),
            "board_id": board_id,
        }
        if not no_pagination:
            data["page"] = page
            data["per_page"] = per_page
        return self.get_success_response(data, "Archived stages retrieved successfully")

    def execute_sort_stage_tasks(self, args):
        board_id, error = self._board(args)
        if error:
            return error
        stage_id, error = self._stage_id(args)
        if error:
            return error
        order_by = args.get("order_by") or "position"
        if order_by not in SORTABLE_TASK_FIELDS:
            return self.get_error_response(
                f"Cannot sort by '{order_by}'. Valid: {', '.join(SORTABLE_TASK_FIELDS)}",
                "invalid_sort_field",
            )
        order = str(args.get("order") or "asc").lower()
        stage = self._stage_in_board(stage_id, board_id)
        if not stage:
            return self.get_error_response("Stage not found", "stage_not_found")
        tasks = sorted(
            self._stage_tasks(board_id, stage_id),
            key=_sort_key(order_by),
            reverse=order == "desc",
        )
        sorted_tasks = []
        for position, task in enumerate(tasks, start=1):
            self.backend.update_task(task["id"], {"position": position})
            sorted_tasks.append(
                {
                    "id": task["id"],
                    "title": task.get("title"),
                    "position": position,
                    "priority": task.get("priority"),
                    "due_at": task.get("due_at"),
                    "created_at": task.get("created_at"),
                }
            )
        return self.get_success_response(
            {
                "board_id": board_id,
                "stage": {"id": stage_id, "title": stage.get("title")},
                "sorted_tasks": sorted_tasks,
                "total_sorted": len(sorted_tasks),
                "sort_criteria": {"order_by": order_by, "order": order},
            },
            "Stage tasks sorted successfully",
        )

    def execute_get_stage_positions(self, args):
        board_id, error = self._board(args)
        if error:
            return error
        stage_id, error = self._stage_id(args)
        if error:
            return error
        stage = self._stage_in_board(stage_id, board_id)
        if not stage:
            return self.get_error_response("Stage not found", "stage_not_found")
        tasks = sorted(self._stage_tasks(board_id, stage_id), key=_sort_key("position"))
        positions = [
            {"task_id": t["id"], "task_title": t.get("title"), "position": t.get("position")}
            for t in tasks
        ]
        max_position = len(tasks)
        return self.get_success_response(
            {
                "board_id": board_id,
                "stage": {"id": stage_id, "title": stage.get("title")},
                "current_positions": positions,
                "used_positions": [t.get("position") for t in tasks],
                "available_positions": list(range(1, max_position + 2)),
                "max_position": max_position,
                "next_position": max_position + 1,
                "total_tasks": len(tasks),
            },
            "Stage positions retrieved successfully",
        )

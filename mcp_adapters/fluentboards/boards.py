"""Board abilities: list, inspect, create, update, delete, archive, pin."""

from mcp_adapters._utils import _positive_int, _text
from mcp_adapters.fluentboards._base import (
    BaseAbility,
    boolean,
    integer,
    now,
    object_schema,
    string,
)

BOARD_TYPES = ("to-do", "kanban", "roadmap")
_BOARD_ID = integer("Board ID")


class Boards(BaseAbility):
    subcategory = "boards"

    def register_abilities(self):
        self.register(
            "list-boards",
            self.execute_list_boards,
            label="List FluentBoards boards",
            description="List all boards accessible to the current user",
            input_schema=object_schema(
                {
                    "page": integer("Page number", default=1, minimum=1),
                    "per_page": integer(
                        "Number of boards per page", default=20, minimum=1, maximum=100
                    ),
                    "search": string("Search boards by title"),
                    "type": string("Filter boards by type", enum=list(BOARD_TYPES)),
                }
            ),
            error_code="list_failed",
            failure="list boards",
        )
        self.register(
            "get-board",
            self.execute_get_board,
            label="Get FluentBoards board",
            description="Get detailed information about a specific board",
            input_schema=object_schema({"board_id": _BOARD_ID}, required=["board_id"]),
            error_code="get_failed",
            failure="get board",
        )
        self.register(
            "create-board",
            self.execute_create_board,
            label="Create FluentBoards board",
            description="Create a new board with comprehensive options",
            input_schema=object_schema(
                {
                    "title": string("Board title (required)"),
                    "description": string("Board description"),
                    "type": string("Board type", enum=["to-do", "roadmap"], default="to-do"),
                    "background": {
                        "type": "object",
                        "description": "Board background configuration",
                        "properties": {
                            "id": string("Background preset ID"),
                            "color": string(
                                "Background color as hex code (e.g., #4A9B7F)",
                                pattern="^#[0-9a-fA-F]{6}$",
                            ),
                        },
                    },
                },
                required=["title"],
            ),
            permission=self.manage_permission,
            error_code="create_failed",
            failure="create board",
        )
        self.register(
            "update-board",
            self.execute_update_board,
            label="Update FluentBoards board",
            description="Update board title, description, type, background or settings",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "title": string("New board title"),
                    "description": string("New board description"),
                    "type": string("Board type", enum=list(BOARD_TYPES)),
                    "currency": string("Board currency code"),
                    "background": {"type": "object", "description": "Board background"},
                    "settings": {"type": "object", "description": "Board settings"},
                },
                required=["board_id"],
            ),
            permission=self.manage_permission,
            error_code="update_failed",
            failure="update board",
        )
        self.register(
            "delete-board",
            self.execute_delete_board,
            label="Delete FluentBoards board",
            description="Permanently delete a board with its stages and tasks",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "confirm_delete": boolean("Must be true to confirm deletion"),
                },
                required=["board_id", "confirm_delete"],
            ),
            permission=self.manage_permission,
            error_code="delete_failed",
            failure="delete board",
        )
        self.register(
            "archive-board",
            self.execute_archive_board,
            label="Archive FluentBoards board",
            description="Archive a board, hiding it from active lists",
            input_schema=object_schema({"board_id": _BOARD_ID}, required=["board_id"]),
            permission=self.manage_permission,
            error_code="archive_failed",
            failure="archive board",
        )
        self.register(
            "restore-board",
            self.execute_restore_board,
            label="Restore FluentBoards board",
            description="Restore an archived board",
            input_schema=object_schema({"board_id": _BOARD_ID}, required=["board_id"]),
            permission=self.manage_permission,
            error_code="restore_failed",
            failure="restore board",
        )
        self.register(
            "duplicate-board",
            self.execute_duplicate_board,
            label="Duplicate FluentBoards board",
            description="Copy a board with its stages into a new board",
            input_schema=object_schema(
                {"board_id": _BOARD_ID, "new_title": string("Title for the copy")},
                required=["board_id"],
            ),
            permission=self.manage_permission,
            error_code="duplicate_failed",
            failure="duplicate board",
        )
        self.register(
            "pin-board",
            self.execute_pin_board,
            label="Pin FluentBoards board",
            description="Pin a board to the top of the user's board list",
            input_schema=object_schema({"board_id": integer("Board ID to pin")}, required=["board_id"]),
            permission=self.manage_permission,
            error_code="pin_failed",
            failure="pin board",
        )
        self.register(
            "unpin-board",
            self.execute_unpin_board,
            label="Unpin FluentBoards board",
            description="Unpin a board from the user's pinned list",
            input_schema=object_schema(
                {"board_id": integer("Board ID to unpin")}, required=["board_id"]
            ),
            permission=self.manage_permission,
            error_code="unpin_failed",
            failure="unpin board",
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _board_id(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return None, self.get_error_response("Invalid board ID", "invalid_board_id")
        return board_id, None

    def _summary(self, board, **extra):
        user_id = self.current_user().id
        summary = {
            "id": board["id"],
            "title": board.get("title", ""),
            "description": board.get("description", ""),
            "type": board.get("type"),
            "created_at": board.get("created_at"),
            "updated_at": board.get("updated_at"),
            "is_pinned": bool(self.backend.is_pinned(board["id"], user_id)),
            "settings": board.get("settings") or {},
            "meta": board.get("meta") or {},
        }
        summary.update(extra)
        return summary

    # ---------------------------------------------------------------------------
    # Execute callbacks
    # ---------------------------------------------------------------------------

    def execute_list_boards(self, args):
        search = _text(args.get("search"))
        per_page = min(100, _positive_int(args.get("per_page")) or 20)
        page = _positive_int(args.get("page")) or 1
        board_type = args.get("type") or "to-do"
        boards = self.backend.list_boards(
            user_id=self.current_user().id,
            board_type=board_type,
            search=search,
            offset=(page - 1) * per_page,
            limit=per_page,
        )
        pinned, regular = [], []
        for board in boards:
            row = self._summary(
                board,
                stages_count=len(self.backend.list_stages(board["id"])),
                users_count=len(self.backend.board_members(board["id"])),
            )
            (pinned if row["is_pinned"] else regular).append(row)
        return self.get_success_response(
            {
                "boards": pinned + regular,
                "total_boards": len(pinned) + len(regular),
                "pinned_count": len(pinned),
                "regular_count": len(regular),
                "search_query": search,
                "type_filter": board_type,
                "page": page,
                "per_page": per_page,
            },
            "Boards retrieved successfully",
        )

    def execute_get_board(self, args):
        board_id, error = self._board_id(args)
        if error:
            return error
        board, error = self._accessible_board(board_id)
        if error:
            return error
        return self.get_success_response(
            {
                "board": self._summary(
                    board,
                    stages_count=len(self.backend.list_stages(board_id)),
                    users_count=len(self.backend.board_members(board_id)),
                    tasks_count=len(self.backend.list_tasks(board_id=board_id)),
                )
            },
            "Board retrieved successfully",
        )

    def execute_create_board(self, args):
        title = _text(args.get("title"))
        if not title:
            return self.get_error_response("Board title is required", "title_required")
        data = {
            "title": title,
            "description": _text(args.get("description")),
            "type": args.get("type") or "to-do",
            "created_by": self.current_user().id,
        }
        if args.get("background"):
            data["background"] = args["background"]
        board = self.backend.create_board(data)
        return self.get_success_response(
            {
                "board": {
                    "id": board["id"],
                    "title": board.get("title"),
                    "description": board.get("description"),
                    "type": board.get("type"),
                    "created_at": board.get("created_at"),
                    "is_pinned": bool(self.backend.is_pinned(board["id"], self.current_user().id)),
                }
            },
            "Board created successfully",
        )

    def execute_update_board(self, args):
        board_id, error = self._board_id(args)
        if error:
            return error
        board, error = self._accessible_board(board_id)
        if error:
            return error
        update = {}
        for key in ("title", "description"):
            if args.get(key) is not None:
                update[key] = _text(args[key])
        for key in ("type", "currency", "background", "settings"):
            if args.get(key) is not None:
                update[key] = args[key]
        if update:
            board = self.backend.update_board(board_id, update)
        return self.get_success_response(
            {
                "board": {
                    "id": board["id"],
                    "title": board.get("title"),
                    "updated_at": board.get("updated_at"),
                    "is_pinned": bool(self.backend.is_pinned(board_id, self.current_user().id)),
                    "settings": board.get("settings") or {},
                },
                "updated_fields": sorted(update),
            },
            "Board updated successfully",
        )

    def execute_delete_board(self, args):
        board_id, error = self._board_id(args)
        if error:
            return error
        if not args.get("confirm_delete"):
            return self.get_error_response(
                "Confirmation required for deletion. Set confirm_delete to true.",
                "confirmation_required",
            )
        board, error = self._accessible_board(board_id)
        if error:
            return error
        self.backend.delete_board(board_id)
        return self.get_success_response(
            {"board_id": board_id, "board_title": board.get("title"), "deleted_at": now()},
            "Board deleted successfully",
        )

    def execute_archive_board(self, args):
        board_id, error = self._board_id(args)
        if error:
            return error
        board, error = self._accessible_board(board_id)
        if error:
            return error
        if board.get("archived_at"):
            return self.get_success_response(
                {
                    "board_id": board_id,
                    "board_title": board.get("title"),
                    "is_archived": True,
                    "archived_at": board["archived_at"],
                    "action": "already_archived",
                },
                "Board is already archived",
            )
        board = self.backend.update_board(board_id, {"archived_at": now()})
        return self.get_success_response(
            {
                "board_id": board_id,
                "board_title": board.get("title"),
                "is_archived": True,
                "archived_at": board.get("archived_at"),
                "action": "archived",
            },
            "Board archived successfully",
        )

    def execute_restore_board(self, args):
        board_id, error = self._board_id(args)
        if error:
            return error
        board, error = self._accessible_board(board_id)
        if error:
            return error
        if not board.get("archived_at"):
            return self.get_success_response(
                {
                    "board_id": board_id,
                    "board_title": board.get("title"),
                    "is_archived": False,
                    "action": "not_archived",
                },
                "Board is not archived",
            )
        board = self.backend.update_board(board_id, {"archived_at": None})
        return self.get_success_response(
            {
                "board_id": board_id,
                "board_title": board.get("title"),
                "is_archived": False,
                "action": "restored",
            },
            "Board restored successfully",
        )

    def execute_duplicate_board(self, args):
        board_id, error = self._board_id(args)
        if error:
            return error
        board, error = self._accessible_board(board_id)
        if error:
            return error
        title = _text(args.get("new_title")) or f"{board.get('title', '')} (Copy)"
        copy = self.backend.duplicate_board(board_id, title, self.current_user().id)
        return self.get_success_response(
            {
                "original_board_id": board_id,
                "board": {
                    "id": copy["id"],
                    "title": copy.get("title"),
                    "type": copy.get("type"),
                    "created_at": copy.get("created_at"),
                    "stages_count": len(self.backend.list_stages(copy["id"])),
                },
            },
            "Board duplicated successfully",
        )

    def execute_pin_board(self, args):
        board_id, error = self._board_id(args)
        if error:
            return error
        board, error = self._accessible_board(board_id)
        if error:
            return error
        user_id = self.current_user().id
        if self.backend.is_pinned(board_id, user_id):
            return self.get_success_response(
                {"board_id": board_id, "is_pinned": True, "action": "already_pinned"},
                "Board is already pinned",
            )
        self.backend.pin_board(board_id, user_id)
        return self.get_success_response(
            {
                "board_id": board_id,
                "board_title": board.get("title"),
                "is_pinned": True,
                "action": "pinned",
            },
            "Board has been pinned successfully",
        )

    def execute_unpin_board(self, args):
        board_id, error = self._board_id(args)
        if error:
            return error
        board, error = self._accessible_board(board_id)
        if error:
            return error
        user_id = self.current_user().id
        if not self.backend.is_pinned(board_id, user_id):
            return self.get_success_response(
                {"board_id": board_id, "is_pinned": False, "action": "not_pinned"},
                "Board is not pinned",
            )
        if not self.backend.unpin_board(board_id, user_id):
            return self.get_error_response("Failed to unpin board", "unpin_failed")
        return self.get_success_response(
            {
                "board_id": board_id,
                "board_title": board.get("title"),
                "is_pinned": False,
                "action": "unpinned",
            },
            "Board has been unpinned successfully",
        )

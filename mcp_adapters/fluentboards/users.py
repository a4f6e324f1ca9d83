"""User abilities: board membership, roles and user lookups."""

import math

from mcp_adapters._utils import _positive_int, _text
from mcp_adapters.fluentboards._base import (
    BaseAbility,
    integer,
    now,
    object_schema,
    string,
)

ROLES = ("member", "manager", "viewer")
TASK_STATUSES = ("open", "in_progress", "completed", "closed")

ROLE_PERMISSIONS = {
    "manager": ["create_tasks", "edit_tasks", "delete_tasks", "manage_members", "edit_board"],
    "member": ["create_tasks", "edit_tasks"],
    "viewer": ["view_tasks"],
}

_BOARD_ID = integer("Board ID")
_USER_ID = integer("User ID")
_ROLE = string("Member role", enum=list(ROLES), default="member")
_SEARCH_LIMIT = 50
_ACTIVITY_LIMIT = 20


def permissions_for_role(role):
    return list(ROLE_PERMISSIONS.get(role, ROLE_PERMISSIONS["member"]))


def _user_row(user, *extra):
    row = {
        "id": user["id"],
        "login": user.get("login"),
        "email": user.get("email"),
        "display_name": user.get("display_name"),
    }
    for key in extra:
        row[key] = user.get(key)
    return row


class Users(BaseAbility):
    subcategory = "users"

    def register_abilities(self):
        board_and_user = object_schema(
            {"board_id": _BOARD_ID, "user_id": _USER_ID}, required=["board_id", "user_id"]
        )
        user_only = object_schema({"user_id": _USER_ID}, required=["user_id"])
        self.register(
            "get-board-users",
            self.execute_get_board_users,
            label="Get board users",
            description="Get all members of a board with their roles",
            input_schema=object_schema({"board_id": _BOARD_ID}, required=["board_id"]),
            error_code="get_board_users_failed",
            failure="get board users",
        )
        self.register(
            "add-board-member",
            self.execute_add_board_member,
            label="Add board member",
            description="Add a user to a board with a role",
            input_schema=object_schema(
                {"board_id": _BOARD_ID, "user_id": _USER_ID, "role": _ROLE},
                required=["board_id", "user_id"],
            ),
            permission=self.manage_permission,
            error_code="add_board_member_failed",
            failure="add board member",
        )
        self.register(
            "remove-board-member",
            self.execute_remove_board_member,
            label="Remove board member",
            description="Remove a user from a board",
            input_schema=board_and_user,
            permission=self.manage_permission,
            error_code="remove_board_member_failed",
            failure="remove board member",
        )
        self.register(
            "update-member-role",
            self.execute_update_member_role,
            label="Update member role",
            description="Change a member's role and reset their permissions to the role default",
            input_schema=object_schema(
                {"board_id": _BOARD_ID, "user_id": _USER_ID, "role": string("New role", enum=list(ROLES))},
                required=["board_id", "user_id", "role"],
            ),
            permission=self.manage_permission,
            error_code="update_member_role_failed",
            failure="update member role",
        )
        self.register(
            "update-board-permissions",
            self.execute_update_board_permissions,
            label="Update board permissions",
            description="Set the exact permissions a member has on a board",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "user_id": _USER_ID,
                    "permissions": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": 'Permission strings, e.g. ["create_tasks", "edit_tasks"]',
                    },
                },
                required=["board_id", "user_id", "permissions"],
            ),
            permission=self.manage_permission,
            error_code="update_permissions_failed",
            failure="update board permissions",
        )
        self.register(
            "bulk-add-members",
            self.execute_bulk_add_members,
            label="Bulk add members",
            description="Add multiple users to multiple boards with specified roles",
            input_schema=object_schema(
                {
                    "operations": {
                        "type": "array",
                        "description": 'Operations like [{"board_id": 1, "user_id": 2, "role": "member"}]',
                        "items": object_schema(
                            {"board_id": {"type": "integer"}, "user_id": {"type": "integer"}, "role": _ROLE},
                            required=["board_id", "user_id"],
                        ),
                    }
                },
                required=["operations"],
            ),
            permission=self.manage_permission,
            error_code="bulk_add_members_failed",
            failure="bulk add members",
        )
        self.register(
            "search-users",
            self.execute_search_users,
            label="Search users",
            description="Search users by login, email or name",
            input_schema=object_schema(
                {
                    "search_term": string("Text to match against login, email or name"),
                    "board_id": integer("Optional board ID to report board access"),
                },
                required=["search_term"],
            ),
            permission=self.manage_permission,
            error_code="search_users_failed",
            failure="search users",
        )
        self.register(
            "get-user-info",
            self.execute_get_user_info,
            label="Get user info",
            description="Get a user's profile and board memberships",
            input_schema=user_only,
            error_code="get_user_info_failed",
            failure="get user info",
        )
        self.register(
            "get-all-users",
            self.execute_get_all_users,
            label="Get all users",
            description="Get all users with pagination",
            input_schema=object_schema(
                {
                    "page": integer("Page number", default=1, minimum=1),
                    "per_page": integer("Users per page", default=20, minimum=1, maximum=100),
                }
            ),
            permission=self.manage_permission,
            error_code="get_all_users_failed",
            failure="get all users",
        )
        self.register(
            "get-user-boards",
            self.execute_get_user_boards,
            label="Get user boards",
            description="Get all active boards a user belongs to",
            input_schema=user_only,
            error_code="get_user_boards_failed",
            failure="get user boards",
        )
        self.register(
            "get-user-tasks",
            self.execute_get_user_tasks,
            label="Get user tasks",
            description="Get all tasks assigned to a user across boards",
            input_schema=object_schema(
                {"user_id": _USER_ID, "status": string("Filter by task status", enum=list(TASK_STATUSES))},
                required=["user_id"],
            ),
            error_code="get_user_tasks_failed",
            failure="get user tasks",
        )
        self.register(
            "get-user-activities",
            self.execute_get_user_activities,
            label="Get user activities",
            description="Get recent activities for a user across all boards",
            input_schema=user_only,
            error_code="get_user_activities_failed",
            failure="get user activities",
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _membership(self, board_id, user_id):
        for member in self.backend.board_members(board_id):
            if member.get("id") == user_id:
                return member
        return None

    def _user(self, args):
        user_id = _positive_int(args.get("user_id"))
        if user_id is None:
            return None, self.get_error_response("Invalid user ID", "invalid_user_id")
        user = self.backend.get_user(user_id)
        if not user:
            return None, self.get_error_response("User not found", "user_not_found")
        return user, None

    def _board_and_member(self, args):
        """Validate ids, board access and membership for member updates."""
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return None, None, self.get_error_response("Invalid board ID", "invalid_board_id")
        user_id = _positive_int(args.get("user_id"))
        if user_id is None:
            return None, None, self.get_error_response("Invalid user ID", "invalid_user_id")
        board, error = self._accessible_board(board_id)
        if error:
            return None, None, error
        member = self._membership(board_id, user_id)
        if member is None:
            return None, None, self.get_error_response(
                "User is not a member of this board", "user_not_member"
            )
        return board, member, None

    def _add_member(self, board_id, user_id, role):
        member = self.backend.add_board_member(board_id, user_id, role)
        return self.backend.update_board_member(
            board_id, user_id, {"role": role, "permissions": permissions_for_role(role)}
        ) or member

    def _memberships_of(self, user_id):
        boards = self.backend.list_boards(user_id=user_id, limit=0)
        for board in boards:
            member = self._membership(board["id"], user_id)
            if member is not None:
                yield board, member

    # ---------------------------------------------------------------------------
    # Execute callbacks
    # ---------------------------------------------------------------------------

    def execute_get_board_users(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        users = []
        for member in self.backend.board_members(board_id):
            user = self.backend.get_user(member["id"])
            if not user:
                continue
            row = _user_row(user, "first_name", "last_name")
            row.update(
                role=member.get("role") or "member",
                permissions=member.get("permissions") or [],
                joined_at=member.get("joined_at"),
            )
            users.append(row)
        return self.get_success_response(
            {"users": users, "total_users": len(users), "board_id": board_id},
            "Board users retrieved successfully",
        )

    def execute_add_board_member(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        user, error = self._user(args)
        if error:
            return error
        board, error = self._accessible_board(board_id)
        if error:
            return error
        if self._membership(board_id, user["id"]) is not None:
            return self.get_error_response(
                "User is already a member of this board", "user_already_member"
            )
        role = args.get("role") if args.get("role") in ROLES else "member"
        member = self._add_member(board_id, user["id"], role)
        return self.get_success_response(
            {
                "board_id": board_id,
                "user": dict(_user_row(user), role=role),
                "joined_at": member.get("joined_at"),
            },
            "User added to board successfully",
        )

    def execute_remove_board_member(self, args):
        board, member, error = self._board_and_member(args)
        if error:
            return error
        self.backend.remove_board_member(board["id"], member["id"])
        return self.get_success_response(
            {"board_id": board["id"], "user_id": member["id"], "removed_at": now()},
            "User removed from board successfully",
        )

    def execute_update_member_role(self, args):
        role = args.get("role")
        if role not in ROLES:
            return self.get_error_response(
                f"Role must be one of: {', '.join(ROLES)}", "invalid_role"
            )
        board, member, error = self._board_and_member(args)
        if error:
            return error
        member = self.backend.update_board_member(
            board["id"], member["id"], {"role": role, "permissions": permissions_for_role(role)}
        )
        user = self.backend.get_user(member["id"]) or {}
        return self.get_success_response(
            {
                "board_id": board["id"],
                "user": {
                    "id": member["id"],
                    "display_name": user.get("display_name"),
                    "role": role,
                    "permissions": member.get("permissions"),
                },
                "updated_at": now(),
            },
            "Member role updated successfully",
        )

    def execute_update_board_permissions(self, args):
        permissions = args.get("permissions")
        if not isinstance(permissions, list):
            return self.get_error_response("Permissions must be a list", "invalid_permissions")
        board, member, error = self._board_and_member(args)
        if error:
            return error
        permissions = [_text(p) for p in permissions if _text(p)]
        member = self.backend.update_board_member(
            board["id"], member["id"], {"permissions": permissions}
        )
        user = self.backend.get_user(member["id"]) or {}
        return self.get_success_response(
            {
                "board_id": board["id"],
                "user": {
                    "id": member["id"],
                    "display_name": user.get("display_name"),
                    "permissions": member.get("permissions"),
                },
                "updated_at": now(),
            },
            "Board permissions updated successfully",
        )

    def _bulk_add_one(self, operation):
        board_id = _positive_int(operation.get("board_id"))
        user_id = _positive_int(operation.get("user_id"))
        role = operation.get("role") if operation.get("role") in ROLES else "member"
        result = {"board_id": board_id or 0, "user_id": user_id or 0}
        if not (board_id and user_id):
            return dict(result, success=False, error="Invalid board or user ID")
        if not self.board_exists(board_id):
            return dict(result, success=False, error="Board not found")
        user = self.backend.get_user(user_id)
        if not user:
            return dict(result, success=False, error="User not found")
        if self._membership(board_id, user_id) is not None:
            return dict(result, success=False, error="User already a member")
        self._add_member(board_id, user_id, role)
        return dict(result, user_name=user.get("display_name"), role=role, success=True)

    def execute_bulk_add_members(self, args):
        operations = args.get("operations") or []
        if not operations:
            return self.get_error_response("No operations provided", "no_operations")
        results = []
        for operation in operations:
            try:
                results.append(self._bulk_add_one(dict(operation or {})))
            except Exception as e:
                results.append(
                    {
                        "board_id": (operation or {}).get("board_id"),
                        "user_id": (operation or {}).get("user_id"),
                        "success": False,
                        "error": str(e),
                    }
                )
        successful = sum(1 for r in results if r["success"])
        return self.get_success_response(
            {
                "operations": results,
                "summary": {
                    "total": len(operations),
                    "successful": successful,
                    "failed": len(results) - successful,
                },
            },
            "Bulk member operations completed",
        )

    def execute_search_users(self, args):
        term = _text(args.get("search_term"))
        if not term:
            return self.get_error_response("Search term is required", "search_term_required")
        board_id = _positive_int(args.get("board_id"))
        users = []
        for user in self.backend.list_users(search=term, limit=_SEARCH_LIMIT):
            row = _user_row(user, "first_name", "last_name")
            if board_id:
                member = self._membership(board_id, user["id"])
                row["has_board_access"] = member is not None
                row["board_role"] = (member.get("role") or "member") if member else None
            users.append(row)
        return self.get_success_response(
            {"users": users, "total_found": len(users), "search_term": term, "board_id": board_id},
            "Users found successfully",
        )

    def execute_get_user_info(self, args):
        user, error = self._user(args)
        if error:
            return error
        boards = [
            {
                "id": board["id"],
                "title": board.get("title"),
                "role": member.get("role") or "member",
                "permissions": member.get("permissions") or [],
                "joined_at": member.get("joined_at"),
            }
            for board, member in self._memberships_of(user["id"])
        ]
        info = _user_row(user, "first_name", "last_name", "description", "roles", "registered")
        info["fluentboards"] = {"boards": boards, "total_boards": len(boards)}
        return self.get_success_response({"user": info}, "User information retrieved successfully")

    def execute_get_all_users(self, args):
        page = _positive_int(args.get("page")) or 1
        per_page = min(100, _positive_int(args.get("per_page")) or 20)
        everyone = sorted(
            self.backend.list_users(limit=0), key=lambda u: (u.get("display_name") or "").lower()
        )
        users = []
        for user in everyone[(page - 1) * per_page : page * per_page]:
            board_count = sum(1 for _ in self._memberships_of(user["id"]))
            row = _user_row(user, "first_name", "last_name", "roles", "registered")
            row.update(fluentboards_access=board_count > 0, board_count=board_count)
            users.append(row)
        return self.get_success_response(
            {
                "users": users,
                "pagination": {
                    "page": page,
                    "per_page": per_page,
                    "total_users": len(everyone),
                    "total_pages": math.ceil(len(everyone) / per_page),
                },
            },
            "All users retrieved successfully",
        )

    def execute_get_user_boards(self, args):
        user, error = self._user(args)
        if error:
            return error
        boards = [
            {
                "id": board["id"],
                "title": board.get("title"),
                "description": board.get("description"),
                "type": board.get("type"),
                "created_at": board.get("created_at"),
                "tasks_count": len(self.backend.list_tasks(board_id=board["id"])),
                "user_role": member.get("role") or "member",
                "user_permissions": member.get("permissions") or [],
                "joined_at": member.get("joined_at"),
            }
            for board, member in self._memberships_of(user["id"])
            if not board.get("archived_at")
        ]
        return self.get_success_response(
            {
                "boards": boards,
                "total_boards": len(boards),
                "user_id": user["id"],
                "user_name": user.get("display_name"),
            },
            "User boards retrieved successfully",
        )

    def execute_get_user_tasks(self, args):
        user, error = self._user(args)
        if error:
            return error
        status = args.get("status") or None
        tasks = self.backend.list_tasks(assignee_id=user["id"])
        if status:
            tasks = [t for t in tasks if t.get("status") == status]
        tasks = sorted(tasks, key=lambda t: t.get("created_at") or "", reverse=True)
        rows = []
        for task in tasks:
            board = self.backend.get_board(task["board_id"]) or {}
            stage = self.backend.get_stage(task.get("stage_id")) if task.get("stage_id") else None
            rows.append(
                {
                    "id": task["id"],
                    "title": task.get("title"),
                    "description": task.get("description"),
                    "status": task.get("status"),
                    "priority": task.get("priority"),
                    "due_at": task.get("due_at"),
                    "created_at": task.get("created_at"),
                    "board": {"id": task["board_id"], "title": board.get("title")},
                    "stage": {"id": task.get("stage_id"), "title": (stage or {}).get("title")},
                }
            )
        return self.get_success_response(
            {
                "tasks": rows,
                "total_tasks": len(rows),
                "user_id": user["id"],
                "user_name": user.get("display_name"),
                "status_filter": status,
            },
            "User tasks retrieved successfully",
        )

    def execute_get_user_activities(self, args):
        user, error = self._user(args)
        if error:
            return error
        activities = sorted(
            self.backend.list_activities(user_id=user["id"], limit=_ACTIVITY_LIMIT),
            key=lambda a: a.get("created_at") or "",
            reverse=True,
        )[:_ACTIVITY_LIMIT]
        return self.get_success_response(
            {
                "activities": activities,
                "total_activities": len(activities),
                "user_id": user["id"],
                "user_name": user.get("display_name"),
            },
            "User activities retrieved successfully",
        )

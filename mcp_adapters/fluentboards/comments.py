"""Comment abilities: threaded comments and replies on tasks."""

from mcp_adapters._utils import _positive_int, _text
from mcp_adapters.fluentboards._base import (
    BaseAbility,
    boolean,
    integer,
    now,
    object_schema,
    string,
)

_BOARD_ID = integer("Board ID")
_CONFIRM = boolean("Confirmation required: set to true to proceed with deletion")


def _thread(comments):
    """Nest replies under their parent comments, oldest first."""
    ordered = sorted(comments, key=lambda c: (c.get("created_at") or "", c.get("id") or 0))
    top = [dict(c, replies=[]) for c in ordered if not c.get("parent_id")]
    by_id = {c["id"]: c for c in top}
    for reply in ordered:
        parent = by_id.get(reply.get("parent_id"))
        if parent is not None:
            parent["replies"].append(reply)
    return top


class Comments(BaseAbility):
    subcategory = "comments"

    def register_abilities(self):
        self.register(
            "get-comments",
            self.execute_get_comments,
            label="Get task comments",
            description="Get all comments for a task, with replies nested",
            input_schema=object_schema(
                {"board_id": _BOARD_ID, "task_id": integer("Task ID")},
                required=["board_id", "task_id"],
            ),
            error_code="get_comments_failed",
            failure="get comments",
        )
        self.register(
            "add-comment",
            self.execute_add_comment,
            label="Add comment",
            description="Add a comment to a task",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "task_id": integer("Task ID"),
                    "comment": string("Comment text"),
                    "comment_type": string(
                        "comment for new comments, reply for replies",
                        enum=["comment", "reply"],
                        default="comment",
                    ),
                    "parent_id": integer("Parent comment ID (required for replies)"),
                    "notify_users": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "User IDs to notify about this comment",
                    },
                },
                required=["board_id", "task_id", "comment"],
            ),
            permission=self.manage_permission,
            error_code="add_comment_failed",
            failure="add comment",
        )
        self.register(
            "add-reply",
            self.execute_add_reply,
            label="Add reply",
            description="Reply to an existing comment",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "comment_id": integer("Comment ID to reply to"),
                    "comment": string("Reply text"),
                },
                required=["board_id", "comment_id", "comment"],
            ),
            permission=self.manage_permission,
            error_code="add_reply_failed",
            failure="add reply",
        )
        self.register(
            "update-comment",
            self.execute_update_comment,
            label="Update comment",
            description="Update an existing comment",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "comment_id": integer("Comment ID to update"),
                    "comment": string("Updated comment text"),
                },
                required=["board_id", "comment_id", "comment"],
            ),
            permission=self.manage_permission,
            error_code="update_comment_failed",
            failure="update comment",
        )
        self.register(
            "update-reply",
            self.execute_update_reply,
            label="Update reply",
            description="Update an existing reply",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "reply_id": integer("Reply ID to update"),
                    "comment": string("Updated reply text"),
                },
                required=["board_id", "reply_id", "comment"],
            ),
            permission=self.manage_permission,
            error_code="update_reply_failed",
            failure="update reply",
        )
        self.register(
            "delete-comment",
            self.execute_delete_comment,
            label="Delete comment",
            description="Delete a comment and its replies permanently",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "comment_id": integer("Comment ID to delete"),
                    "confirm_delete": _CONFIRM,
                },
                required=["board_id", "comment_id", "confirm_delete"],
            ),
            permission=self.manage_permission,
            error_code="delete_comment_failed",
            failure="delete comment",
        )
        self.register(
            "delete-reply",
            self.execute_delete_reply,
            label="Delete reply",
            description="Delete a reply permanently",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "reply_id": integer("Reply ID to delete"),
                    "confirm_delete": _CONFIRM,
                },
                required=["board_id", "reply_id", "confirm_delete"],
            ),
            permission=self.manage_permission,
            error_code="delete_reply_failed",
            failure="delete reply",
        )
        self.register(
            "update-comment-privacy",
            self.execute_update_comment_privacy,
            label="Update comment privacy",
            description="Make a comment private or public",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "comment_id": integer("Comment ID"),
                    "is_private": boolean("Whether the comment is private"),
                },
                required=["board_id", "comment_id", "is_private"],
            ),
            permission=self.manage_permission,
            error_code="update_privacy_failed",
            failure="update comment privacy",
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _board(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return None, self.get_error_response("Invalid board ID", "invalid_board_id")
        return self._accessible_board(board_id)

    def _comment_on_board(self, comment_id, board_id, *, entity="Comment", code="comment_not_found"):
        """Fetch a comment whose task lives on ``board_id``."""
        comment = self.backend.get_comment(comment_id)
        task = self.backend.get_task(comment["task_id"]) if comment else None
        if not task or task.get("board_id") != board_id:
            return None, self.get_error_response(f"{entity} not found", code)
        return comment, None

    def _owned(self, comment) -> bool:
        user = self.current_user()
        return comment.get("created_by") == user.id or user.can("manage_options")

    def _create(self, task_id, text, *, parent_id=None, comment_type="comment"):
        data = {
            "content": text,
            "type": comment_type,
            "created_by": self.current_user().id,
        }
        if parent_id:
            data["parent_id"] = parent_id
        return self.backend.create_comment(task_id, data)

    # ---------------------------------------------------------------------------
    # Execute callbacks
    # ---------------------------------------------------------------------------

    def execute_get_comments(self, args):
        board, error = self._board(args)
        if error:
            return error
        task_id = _positive_int(args.get("task_id"))
        if task_id is None:
            return self.get_error_response("Invalid task ID", "invalid_task_id")
        task, error = self._task_in_board(task_id, board["id"])
        if error:
            return error
        comments = _thread(self.backend.list_comments(task_id))
        return self.get_success_response(
            {
                "comments": comments,
                "total_comments": len(comments),
                "board_id": board["id"],
                "task_id": task_id,
            },
            "Comments retrieved successfully",
        )

    def execute_add_comment(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return self.get_error_response("Invalid board ID", "invalid_board_id")
        task_id = _positive_int(args.get("task_id"))
        if task_id is None:
            return self.get_error_response("Invalid task ID", "invalid_task_id")
        text = _text(args.get("comment"))
        if not text:
            return self.get_error_response("Comment text is required", "comment_required")
        board, error = self._accessible_board(board_id)
        if error:
            return error
        task, error = self._task_in_board(task_id, board_id)
        if error:
            return error
        comment_type = args.get("comment_type") or "comment"
        parent_id = _positive_int(args.get("parent_id"))
        if comment_type == "reply" and parent_id:
            parent = self.backend.get_comment(parent_id)
            if not parent or parent.get("task_id") != task_id:
                return self.get_error_response("Parent comment not found", "parent_comment_not_found")
        comment = self._create(task_id, text, parent_id=parent_id, comment_type=comment_type)
        notify = [uid for uid in args.get("notify_users") or [] if self.backend.get_user(uid)]
        return self.get_success_response(
            {
                "comment": comment,
                "board_id": board_id,
                "task_id": task_id,
                "notifications_sent": len(notify),
            },
            "Comment added successfully",
        )

    def execute_add_reply(self, args):
        board, error = self._board(args)
        if error:
            return error
        comment_id = _positive_int(args.get("comment_id"))
        if comment_id is None:
            return self.get_error_response("Invalid comment ID", "invalid_comment_id")
        text = _text(args.get("comment"))
        if not text:
            return self.get_error_response("Reply text is required", "reply_required")
        parent, error = self._comment_on_board(comment_id, board["id"])
        if error:
            return error
        # replies attach to the top-level comment of a thread
        root_id = parent.get("parent_id") or parent["id"]
        reply = self._create(parent["task_id"], text, parent_id=root_id, comment_type="reply")
        return self.get_success_response(
            {"reply": reply, "board_id": board["id"], "parent_id": root_id},
            "Reply added successfully",
        )

    def _update_text(self, args, id_key, entity):
        code = "comment" if entity == "Comment" else "reply"
        board, error = self._board(args)
        if error:
            return error
        item_id = _positive_int(args.get(id_key))
        if item_id is None:
            return self.get_error_response(f"Invalid {code} ID", f"invalid_{code}_id")
        text = _text(args.get("comment"))
        if not text:
            return self.get_error_response(f"{entity} text is required", f"{code}_required")
        item, error = self._comment_on_board(item_id, board["id"], entity=entity, code=f"{code}_not_found")
        if error:
            return error
        if not self._owned(item):
            return self.get_error_response(
                f"Permission denied to edit this {code}", "permission_denied"
            )
        item = self.backend.update_comment(item_id, {"content": text, "updated_at": now()})
        return self.get_success_response(
            {code: item, "board_id": board["id"]}, f"{entity} updated successfully"
        )

    def execute_update_comment(self, args):
        return self._update_text(args, "comment_id", "Comment")

    def execute_update_reply(self, args):
        return self._update_text(args, "reply_id", "Reply")

    def execute_delete_comment(self, args):
        board, error = self._board(args)
        if error:
            return error
        comment_id = _positive_int(args.get("comment_id"))
        if comment_id is None:
            return self.get_error_response("Invalid comment ID", "invalid_comment_id")
        if not args.get("confirm_delete"):
            return self.get_error_response(
                "Confirmation required for deletion. Set confirm_delete to true.",
                "confirmation_required",
            )
        comment, error = self._comment_on_board(comment_id, board["id"])
        if error:
            return error
        if not self._owned(comment):
            return self.get_error_response(
                "Permission denied to delete this comment", "permission_denied"
            )
        replies_deleted = self.backend.delete_comment(comment_id)
        return self.get_success_response(
            {
                "comment_id": comment_id,
                "board_id": board["id"],
                "replies_deleted": replies_deleted,
                "deleted_at": now(),
            },
            "Comment and replies deleted successfully",
        )

    def execute_delete_reply(self, args):
        board, error = self._board(args)
        if error:
            return error
        reply_id = _positive_int(args.get("reply_id"))
        if reply_id is None:
            return self.get_error_response("Invalid reply ID", "invalid_reply_id")
        if not args.get("confirm_delete"):
            return self.get_error_response(
                "Confirmation required for deletion. Set confirm_delete to true.",
                "confirmation_required",
            )
        reply, error = self._comment_on_board(
            reply_id, board["id"], entity="Reply", code="reply_not_found"
        )
        if error:
            return error
        if not self._owned(reply):
            return self.get_error_response(
                "Permission denied to delete this reply", "permission_denied"
            )
        self.backend.delete_comment(reply_id)
        return self.get_success_response(
            {"reply_id": reply_id, "board_id": board["id"], "deleted_at": now()},
            "Reply deleted successfully",
        )

    def execute_update_comment_privacy(self, args):
        board, error = self._board(args)
        if error:
            return error
        comment_id = _positive_int(args.get("comment_id"))
        if comment_id is None:
            return self.get_error_response("Invalid comment ID", "invalid_comment_id")
        comment, error = self._comment_on_board(comment_id, board["id"])
        if error:
            return error
        if not self._owned(comment):
            return self.get_error_response(
                "Permission denied to modify this comment privacy", "permission_denied"
            )
        comment = self.backend.update_comment(
            comment_id, {"is_private": bool(args.get("is_private")), "updated_at": now()}
        )
        return self.get_success_response(
            {
                "comment": {
                    "id": comment["id"],
                    "is_private": comment.get("is_private"),
                    "updated_at": comment.get("updated_at"),
                },
                "board_id": board["id"],
            },
            "Comment privacy updated successfully",
        )

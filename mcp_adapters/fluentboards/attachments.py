"""Attachment abilities: links and files attached to tasks."""

from urllib.parse import urlsplit

from mcp_adapters._utils import _positive_int, _text
from mcp_adapters.fluentboards._base import (
    BaseAbility,
    boolean,
    integer,
    now,
    object_schema,
    string,
)

ATTACHMENT_TYPES = ("file", "link")
_URL_SCHEMES = ("http", "https", "ftp", "ftps")

_BOARD_ID = integer("Board ID")
_TASK_ID = integer("Task ID")
_ATTACHMENT_ID = integer("Attachment ID")


def _clean_url(value):
    """Return ``value`` if it is an absolute URL with an allowed scheme, else ``""``."""
    value = _text(value)
    parts = urlsplit(value)
    if parts.scheme.lower() not in _URL_SCHEMES or not parts.netloc:
        return ""
    return value


def _row(attachment, *extra):
    row = {
        "id": attachment["id"],
        "title": attachment.get("title"),
        "url": attachment.get("url"),
        "type": attachment.get("type"),
        "description": attachment.get("description"),
    }
    for key in extra:
        row[key] = attachment.get(key)
    return row


class Attachments(BaseAbility):
    subcategory = "attachments"

    def register_abilities(self):
        board_and_task = object_schema(
            {"board_id": _BOARD_ID, "task_id": _TASK_ID}, required=["board_id", "task_id"]
        )
        self.register(
            "get-task-attachments",
            self.execute_get_task_attachments,
            label="Get task attachments",
            description="Get all attachments for a task, newest first",
            input_schema=board_and_task,
            error_code="get_failed",
            failure="get task attachments",
        )
        self.register(
            "add-task-attachment",
            self.execute_add_task_attachment,
            label="Add task attachment",
            description="Add an attachment to a task",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "task_id": _TASK_ID,
                    "title": string("Attachment title"),
                    "url": string("Attachment URL"),
                    "type": string("Attachment type", enum=list(ATTACHMENT_TYPES), default="link"),
                    "description": string("Attachment description"),
                },
                required=["board_id", "task_id", "title", "url"],
            ),
            permission=self.manage_permission,
            error_code="add_failed",
            failure="add attachment",
        )
        self.register(
            "update-attachment",
            self.execute_update_attachment,
            label="Update attachment",
            description="Update an attachment's title, URL or description",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "task_id": _TASK_ID,
                    "attachment_id": _ATTACHMENT_ID,
                    "title": string("New title"),
                    "url": string("New URL"),
                    "description": string("New description"),
                },
                required=["board_id", "task_id", "attachment_id"],
            ),
            permission=self.manage_permission,
            error_code="update_failed",
            failure="update attachment",
        )
        self.register(
            "delete-attachment",
            self.execute_delete_attachment,
            label="Delete attachment",
            description="Delete an attachment permanently",
            input_schema=object_schema(
                {
                    "board_id": _BOARD_ID,
                    "task_id": _TASK_ID,
                    "attachment_id": _ATTACHMENT_ID,
                    "confirm_delete": boolean(
                        "Confirmation required: set to true to proceed with deletion"
                    ),
                },
                required=["board_id", "task_id", "attachment_id", "confirm_delete"],
            ),
            permission=self.manage_permission,
            error_code="delete_failed",
            failure="delete attachment",
        )
        self.register(
            "get-attachment-files",
            self.execute_get_attachment_files,
            label="Get attachment files",
            description="Get the uploaded file attachments of a task",
            input_schema=board_and_task,
            error_code="get_failed",
            failure="get attachment files",
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _task(self, args, *, with_attachment=False, confirm=False):
        """Resolve ``(task, attachment)`` after id, access and ownership checks."""
        board_id = _positive_int(args.get("board_id"))
        task_id = _positive_int(args.get("task_id"))
        attachment_id = _positive_int(args.get("attachment_id")) if with_attachment else 0
        if not (board_id and task_id) or attachment_id is None:
            message = (
                "Invalid board, task, or attachment ID"
                if with_attachment
                else "Invalid board or task ID"
            )
            return None, None, self.get_error_response(message, "invalid_ids")
        if confirm and not args.get("confirm_delete"):
            return None, None, self.get_error_response(
                "Confirmation required for deletion. Set confirm_delete to true.",
                "confirmation_required",
            )
        board, error = self._accessible_board(board_id)
        if error:
            return None, None, error
        task, error = self._task_in_board(task_id, board_id)
        if error:
            return None, None, error
        if not with_attachment:
            return task, None, None
        attachment = self.backend.get_attachment(attachment_id)
        if not attachment or attachment.get("task_id") != task_id:
            return None, None, self.get_error_response("Attachment not found", "attachment_not_found")
        return task, attachment, None

    def _newest_first(self, task_id):
        return sorted(
            self.backend.list_attachments(task_id),
            key=lambda a: (a.get("created_at") or "", a.get("id") or 0),
            reverse=True,
        )

    # ---------------------------------------------------------------------------
    # Execute callbacks
    # ---------------------------------------------------------------------------

    def execute_get_task_attachments(self, args):
        task, _, error = self._task(args)
        if error:
            return error
        attachments = [
            _row(a, "file_size", "mime_type", "created_at", "created_by")
            for a in self._newest_first(task["id"])
        ]
        return self.get_success_response(
            {
                "task_id": task["id"],
                "board_id": task["board_id"],
                "attachments": attachments,
                "total_attachments": len(attachments),
            },
            "Task attachments retrieved successfully",
        )

    def execute_add_task_attachment(self, args):
        board_id = _positive_int(args.get("board_id"))
        task_id = _positive_int(args.get("task_id"))
        if not (board_id and task_id):
            return self.get_error_response("Invalid board or task ID", "invalid_ids")
        title, url = _text(args.get("title")), _clean_url(args.get("url"))
        if not title or not url:
            return self.get_error_response("Title and URL are required", "missing_required_fields")
        task, _, error = self._task(args)
        if error:
            return error
        kind = args.get("type") if args.get("type") in ATTACHMENT_TYPES else "link"
        attachment = self.backend.create_attachment(
            task_id,
            {
                "title": title,
                "url": url,
                "type": kind,
                "description": _text(args.get("description")),
                "created_by": self.current_user().id,
            },
        )
        return self.get_success_response(
            {
                "attachment": _row(attachment, "created_at", "created_by"),
                "task_id": task_id,
                "board_id": board_id,
            },
            "Attachment added successfully",
        )

    def execute_update_attachment(self, args):
        task, attachment, error = self._task(args, with_attachment=True)
        if error:
            return error
        update = {}
        if "title" in args:
            update["title"] = _text(args["title"])
        if "url" in args:
            update["url"] = _clean_url(args["url"])
        if "description" in args:
            update["description"] = _text(args["description"])
        if not update:
            return self.get_error_response("No fields to update", "no_update_data")
        update["updated_at"] = now()
        attachment = self.backend.update_attachment(attachment["id"], update)
        return self.get_success_response(
            {
                "attachment": _row(attachment, "updated_at"),
                "task_id": task["id"],
                "board_id": task["board_id"],
            },
            "Attachment updated successfully",
        )

    def execute_delete_attachment(self, args):
        task, attachment, error = self._task(args, with_attachment=True, confirm=True)
        if error:
            return error
        self.backend.delete_attachment(attachment["id"])
        return self.get_success_response(
            {
                "attachment_id": attachment["id"],
                "attachment_title": attachment.get("title"),
                "task_id": task["id"],
                "board_id": task["board_id"],
                "deleted_at": now(),
            },
            "Attachment deleted successfully",
        )

    def execute_get_attachment_files(self, args):
        task, _, error = self._task(args)
        if error:
            return error
        files = [
            _row(a, "file_size", "mime_type", "created_at", "created_by")
            for a in self._newest_first(task["id"])
            if a.get("type") == "file"
        ]
        for row in files:
            row.pop("type")
        return self.get_success_response(
            {
                "task_id": task["id"],
                "board_id": task["board_id"],
                "files": files,
                "total_files": len(files),
            },
            "Attachment files retrieved successfully",
        )

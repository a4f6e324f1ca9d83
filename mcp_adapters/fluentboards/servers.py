"""Server assemblers publishing FluentBoards abilities through the MCP adapter."""

from mcp_adapters.server._handlers import ErrorLogErrorHandler, NullObservabilityHandler
from mcp_adapters.server._server import HTTP_TRANSPORT, STDIO_TRANSPORT

VERSION = "0.1.0"
TRANSPORTS = (HTTP_TRANSPORT, STDIO_TRANSPORT)

BOARD_ABILITIES = [
    "fluentboards/create-board",
    "fluentboards/list-boards",
    "fluentboards/get-board",
    "fluentboards/update-board",
    "fluentboards/delete-board",
    "fluentboards/duplicate-board",
    "fluentboards/archive-board",
    "fluentboards/restore-board",
    "fluentboards/pin-board",
    "fluentboards/unpin-board",
]

MEMBER_ABILITIES = [
    "fluentboards/update-board-permissions",
    "fluentboards/get-board-users",
    "fluentboards/add-board-member",
    "fluentboards/remove-board-member",
    "fluentboards/update-member-role",
    "fluentboards/bulk-add-members",
]

TASK_ABILITIES = [
    "fluentboards/create-task",
    "fluentboards/list-tasks",
    "fluentboards/get-task",
    "fluentboards/update-task",
    "fluentboards/delete-task",
    "fluentboards/clone-task",
    "fluentboards/archive-task",
    "fluentboards/restore-task",
    "fluentboards/move-task",
    "fluentboards/change-task-status",
    "fluentboards/assign-yourself-to-task",
    "fluentboards/detach-yourself-from-task",
]

STAGE_ABILITIES = [
    "fluentboards/create-stage",
    "fluentboards/list-stages",
    "fluentboards/update-stage",
    "fluentboards/delete-stage",
    "fluentboards/restore-stage",
    "fluentboards/get-archived-stages",
    "fluentboards/get-stage-positions",
    "fluentboards/reorder-stages",
    "fluentboards/move-all-tasks",
    "fluentboards/archive-all-tasks",
    "fluentboards/sort-stage-tasks",
]

COMMENT_ABILITIES = [
    "fluentboards/add-comment",
    "fluentboards/get-comments",
    "fluentboards/update-comment",
    "fluentboards/delete-comment",
    "fluentboards/update-comment-privacy",
    "fluentboards/add-reply",
    "fluentboards/update-reply",
    "fluentboards/delete-reply",
]

LABEL_ABILITIES = [
    "fluentboards/create-label",
    "fluentboards/list-labels",
    "fluentboards/update-label",
    "fluentboards/delete-label",
    "fluentboards/add-label-to-task",
    "fluentboards/remove-label-from-task",
    "fluentboards/get-task-labels",
]

ATTACHMENT_ABILITIES = [
    "fluentboards/add-task-attachment",
    "fluentboards/get-task-attachments",
    "fluentboards/get-attachment-files",
    "fluentboards/update-attachment",
    "fluentboards/delete-attachment",
]

USER_ABILITIES = [
    "fluentboards/get-all-users",
    "fluentboards/search-users",
    "fluentboards/get-user-info",
    "fluentboards/get-user-boards",
    "fluentboards/get-user-tasks",
    "fluentboards/get-user-activities",
    "fluentboards/get-board-activities",
    "fluentboards/get-activity-timeline",
]

REPORTING_ABILITIES = [
    "fluentboards/get-dashboard-stats",
    "fluentboards/get-board-report",
    "fluentboards/get-all-board-reports",
    "fluentboards/get-member-reports",
    "fluentboards/get-stage-wise-reports",
    "fluentboards/get-team-workload",
]

PROMPT_ABILITIES = [
    "fluentboards/project-overview",
    "fluentboards/analyze-workflow",
    "fluentboards/status-checkin",
    "fluentboards/team-productivity",
]


class BoardCrudServer:
    """Board management only: create, read, update, delete, pin, archive, duplicate."""

    server_id = "fluentboards-board-crud"

    def register_with_adapter(self, adapter):
        return adapter.create_server(
            self.server_id,
            "fluentboards-board-crud",
            "mcp",
            "FluentBoards Board CRUD",
            "Board management operations only - create, read, update, delete, pin, archive, "
            "duplicate boards",
            VERSION,
            TRANSPORTS,
            ErrorLogErrorHandler,
            NullObservabilityHandler,
            self.get_all_abilities(),
        )

    def get_all_abilities(self):
        return list(BOARD_ABILITIES)


class FullFluentBoardsServer:
    """Every FluentBoards ability plus the prompt templates."""

    server_id = "fluentboards-full"

    def register_with_adapter(self, adapter):
        return adapter.create_server(
            self.server_id,
            "fluentboards",
            "mcp",
            "FluentBoards Complete",
            "Complete FluentBoards project management with all features - boards, tasks, "
            "comments, attachments, reporting",
            VERSION,
            TRANSPORTS,
            ErrorLogErrorHandler,
            NullObservabilityHandler,
            self.get_all_abilities(),
            prompts=self.get_all_prompts(),
        )

    def get_all_abilities(self):
        return (
            BOARD_ABILITIES
            + MEMBER_ABILITIES
            + TASK_ABILITIES
            + STAGE_ABILITIES
            + COMMENT_ABILITIES
            + LABEL_ABILITIES
            + ATTACHMENT_ABILITIES
            + USER_ABILITIES
            + REPORTING_ABILITIES
        )

    def get_all_prompts(self):
        return list(PROMPT_ABILITIES)

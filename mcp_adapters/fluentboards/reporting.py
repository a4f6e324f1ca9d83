"""Reporting abilities: dashboard, board, member and workload aggregates.

Every report is computed from the backend's boards, stages, tasks and
activities; the store keeps no report tables of its own.
"""

import calendar
import math
from datetime import datetime, timedelta, timezone

from mcp_adapters._utils import _positive_int
from mcp_adapters.fluentboards._base import BaseAbility, integer, now, object_schema, string

PERIODS = ("today", "week", "month", "quarter", "year")
WORKLOAD_PERIODS = ("current", "upcoming", "overdue")
MEMBER_REPORT_TYPES = ("tasks", "activities", "projects", "comprehensive")
PRIORITY_KEYS = ("high", "medium", "low", "normal", "urgent")
CLOSED = "closed"

_DATE = "%Y-%m-%d"


def valid_date(value) -> bool:
    """True for a real calendar date written exactly as ``YYYY-MM-DD``."""
    try:
        return datetime.strptime(value, _DATE).strftime(_DATE) == value
    except (TypeError, ValueError):
        return False


def period_range(period, today=None):
    """Start and end timestamps of the calendar ``period`` containing ``today``."""
    today = today or datetime.now(timezone.utc).date()
    if period == "today":
        start = end = today
    elif period == "week":
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=6)
    elif period == "quarter":
        first_month = (today.month - 1) // 3 * 3 + 1
        start = today.replace(month=first_month, day=1)
        last_month = first_month + 2
        end = today.replace(month=last_month, day=calendar.monthrange(today.year, last_month)[1])
    elif period == "year":
        start, end = today.replace(month=1, day=1), today.replace(month=12, day=31)
    else:
        start = today.replace(day=1)
        end = today.replace(day=calendar.monthrange(today.year, today.month)[1])
    return {"start": f"{start:%Y-%m-%d} 00:00:00", "end": f"{end:%Y-%m-%d} 23:59:59"}


def capacity_indicator(task_count):
    if task_count <= 5:
        return "low"
    if task_count <= 15:
        return "medium"
    if task_count <= 25:
        return "high"
    return "overloaded"


def _is_overdue(task, stamp):
    due = task.get("due_at")
    return bool(due) and due < stamp and task.get("status") != CLOSED


def _in_range(value, start, end):
    return bool(value) and start <= value <= end


def _task_counts(tasks, stamp):
    total = len(tasks)
    completed = sum(1 for t in tasks if t.get("status") == CLOSED)
    return {
        "total_tasks": total,
        "completed_tasks": completed,
        "open_tasks": total - completed,
        "overdue_tasks": sum(1 for t in tasks if _is_overdue(t, stamp)),
        "completion_rate": round(completed / total * 100, 2) if total else 0,
    }


def _paginate(items, page, per_page):
    start = (page - 1) * per_page
    return items[start : start + per_page], {
        "page": page,
        "per_page": per_page,
        "total": len(items),
        "total_pages": math.ceil(len(items) / per_page),
    }


class Reporting(BaseAbility):
    subcategory = "reporting"

    def register_abilities(self):
        board_only = object_schema({"board_id": integer("Board ID")}, required=["board_id"])
        page = integer("Page number", default=1, minimum=1)
        self.register(
            "get-dashboard-stats",
            self.execute_get_dashboard_stats,
            label="Get dashboard stats",
            description="Get dashboard statistics and key metrics",
            input_schema=object_schema(
                {"period": string("Time period", enum=list(PERIODS), default="month")}
            ),
            error_code="dashboard_failed",
            failure="get dashboard stats",
        )
        self.register(
            "get-board-report",
            self.execute_get_board_report,
            label="Get board report",
            description="Get a detailed report for one board",
            input_schema=board_only,
            error_code="board_report_failed",
            failure="get board report",
        )
        self.register(
            "get-all-board-reports",
            self.execute_get_all_board_reports,
            label="Get all board reports",
            description="Get reports for all accessible boards",
            error_code="all_reports_failed",
            failure="get all board reports",
        )
        self.register(
            "get-member-reports",
            self.execute_get_member_reports,
            label="Get member reports",
            description="Get member performance and activity reports",
            input_schema=object_schema(
                {
                    "user_id": integer("User ID for the report"),
                    "board_ids": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "Board IDs to include",
                    },
                    "date_from": string("Start date (YYYY-MM-DD)", format="date"),
                    "date_to": string("End date (YYYY-MM-DD)", format="date"),
                    "report_type": string(
                        "Type of member report", enum=list(MEMBER_REPORT_TYPES), default="comprehensive"
                    ),
                },
                required=["user_id"],
            ),
            error_code="member_reports_failed",
            failure="get member reports",
        )
        self.register(
            "get-stage-wise-reports",
            self.execute_get_stage_wise_reports,
            label="Get stage-wise reports",
            description="Get stage-wise task distribution and progress",
            input_schema=board_only,
            error_code="stage_reports_failed",
            failure="get stage-wise reports",
        )
        self.register(
            "get-team-workload",
            self.execute_get_team_workload,
            label="Get team workload",
            description="Get team workload and capacity analysis",
            input_schema=object_schema(
                {
                    "board_id": integer("Board ID; all accessible boards when omitted"),
                    "period": string("Workload window", enum=list(WORKLOAD_PERIODS), default="current"),
                }
            ),
            error_code="workload_failed",
            failure="get team workload",
        )
        self.register(
            "get-activity-timeline",
            self.execute_get_activity_timeline,
            label="Get activity timeline",
            description="Get activity timeline and project history",
            input_schema=object_schema(
                {
                    "board_id": integer("Board ID"),
                    "user_id": integer("Only activities by this user"),
                    "date_from": string("Start date (YYYY-MM-DD)", format="date"),
                    "date_to": string("End date (YYYY-MM-DD)", format="date"),
                    "page": page,
                    "per_page": integer("Activities per page", default=50, minimum=1, maximum=100),
                }
            ),
            error_code="timeline_failed",
            failure="get activity timeline",
        )
        self.register(
            "get-board-activities",
            self.execute_get_board_activities,
            label="Get board activities",
            description="Get recent activities and changes for a board",
            input_schema=object_schema(
                {
                    "board_id": integer("Board ID"),
                    "page": page,
                    "per_page": integer("Activities per page", default=20, minimum=1, maximum=100),
                },
                required=["board_id"],
            ),
            error_code="activities_failed",
            failure="get board activities",
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _accessible_boards(self):
        user = self.current_user()
        if user.can("manage_options"):
            return self.backend.list_boards(limit=0)
        return self.backend.list_boards(user_id=user.id, limit=0)

    def _accessible_ids(self):
        return [board["id"] for board in self._accessible_boards()]

    def _board_access(self, args):
        board_id = _positive_int(args.get("board_id"))
        if board_id is None:
            return None, self.get_error_response("Invalid board ID", "invalid_board_id")
        if board_id not in self._accessible_ids():
            return None, self.get_error_response("Access denied to board", "access_denied")
        return self.backend.get_board(board_id), None

    def _activities_available(self):
        return callable(getattr(self.backend, "list_activities", None))

    def _check_dates(self, args):
        for key in ("date_from", "date_to"):
            if args.get(key) and not valid_date(args[key]):
                return self.get_error_response(
                    f"Invalid {key} format. Use YYYY-MM-DD.", "invalid_date_format"
                )
        return None

    def _board_report(self, board, stamp):
        tasks = self.backend.list_tasks(board_id=board["id"])
        priorities = {key: 0 for key in PRIORITY_KEYS}
        for task in tasks:
            if task.get("priority") in priorities:
                priorities[task["priority"]] += 1
        report = _task_counts(tasks, stamp)
        report.update(
            stages_count=len(self.backend.list_stages(board["id"])),
            members_count=len(self.backend.board_members(board["id"])),
            priority_distribution=priorities,
        )
        return report

    @staticmethod
    def _board_ref(board):
        return {"id": board["id"], "title": board.get("title"), "type": board.get("type")}

    def _activity_row(self, activity):
        user = self.backend.get_user(activity.get("created_by")) if activity.get("created_by") else None
        task = self.backend.get_task(activity["task_id"]) if activity.get("task_id") else None
        return {
            "id": activity.get("id"),
            "action": activity.get("action"),
            "description": activity.get("description"),
            "object_type": activity.get("object_type"),
            "object_id": activity.get("object_id"),
            "old_value": activity.get("old_value"),
            "new_value": activity.get("new_value"),
            "created_at": activity.get("created_at"),
            "user": {"id": user["id"], "name": user.get("display_name"), "email": user.get("email")}
            if user
            else None,
            "task": {"id": task["id"], "title": task.get("title")} if task else None,
            "board_id": activity.get("board_id"),
        }

    def _activities(self, **filters):
        rows = self.backend.list_activities(limit=0, **filters)
        return sorted(rows, key=lambda a: a.get("created_at") or "", reverse=True)

    # ---------------------------------------------------------------------------
    # Execute callbacks
    # ---------------------------------------------------------------------------

    def execute_get_dashboard_stats(self, args):
        period = args.get("period") if args.get("period") in PERIODS else "month"
        date_range = period_range(period)
        boards = self._accessible_boards()
        if not boards:
            return self.get_error_response("No accessible boards found", "no_boards_found")
        board_ids = [board["id"] for board in boards]
        stamp = now()
        tasks = [t for board_id in board_ids for t in self.backend.list_tasks(board_id=board_id)]
        counts = _task_counts(tasks, stamp)
        start, end = date_range["start"], date_range["end"]
        priorities = {key: 0 for key in PRIORITY_KEYS}
        for task in tasks:
            if task.get("status") != CLOSED and task.get("priority") in priorities:
                priorities[task["priority"]] += 1
        recent = 0
        if self._activities_available():
            recent = len(self._activities(board_ids=board_ids, date_from=start, date_to=end))
        stats = {
            "overview": {
                "total_boards": len(boards),
                "total_tasks": counts["total_tasks"],
                "completed_tasks": counts["completed_tasks"],
                "overdue_tasks": counts["overdue_tasks"],
                "completion_rate": counts["completion_rate"],
            },
            "period_stats": {
                "period": period,
                "date_range": date_range,
                "new_tasks": sum(1 for t in tasks if _in_range(t.get("created_at"), start, end)),
                "completed_tasks": sum(
                    1
                    for t in tasks
                    if t.get("status") == CLOSED and _in_range(t.get("updated_at"), start, end)
                ),
                "recent_activities": recent,
            },
            "priority_distribution": priorities,
        }
        return self.get_success_response(
            {"stats": stats, "generated_at": stamp}, "Dashboard stats retrieved successfully"
        )

    def execute_get_board_report(self, args):
        board, error = self._board_access(args)
        if error:
            return error
        stamp = now()
        return self.get_success_response(
            {
                "board": self._board_ref(board),
                "report": self._board_report(board, stamp),
                "generated_at": stamp,
            },
            "Board report retrieved successfully",
        )

    def execute_get_all_board_reports(self, args):
        stamp = now()
        boards = [
            dict(self._board_ref(board), **self._board_report(board, stamp))
            for board in self._accessible_boards()
        ]
        totals = {
            key: sum(b[key] for b in boards)
            for key in ("total_tasks", "completed_tasks", "open_tasks", "overdue_tasks")
        }
        totals["total_boards"] = len(boards)
        return self.get_success_response(
            {"report": {"boards": boards, "totals": totals}, "generated_at": stamp},
            "All board reports retrieved successfully",
        )

    def execute_get_member_reports(self, args):
        user_id = _positive_int(args.get("user_id"))
        if user_id is None:
            return self.get_error_response("Invalid user ID", "invalid_user_id")
        error = self._check_dates(args)
        if error:
            return error
        date_from, date_to = args.get("date_from") or None, args.get("date_to") or None
        report_type = args.get("report_type") if args.get("report_type") in MEMBER_REPORT_TYPES else "comprehensive"
        accessible = self._accessible_ids()
        requested = [_positive_int(b) for b in args.get("board_ids") or []]
        board_ids = [b for b in requested if b in accessible] if requested else accessible
        if not board_ids:
            return self.get_error_response("No accessible boards found", "no_boards_found")
        user = self.backend.get_user(user_id)
        if not user:
            return self.get_error_response("User not found", "user_not_found")

        stamp = now()
        tasks = [
            t
            for t in self.backend.list_tasks(assignee_id=user_id)
            if t.get("board_id") in board_ids
        ]
        if date_from and date_to:
            tasks = [
                t
                for t in tasks
                if _in_range(t.get("created_at"), f"{date_from} 00:00:00", f"{date_to} 23:59:59")
            ]
        report = {
            "tasks": {
                "total_assigned": len(tasks),
                "completed": sum(1 for t in tasks if t.get("status") == CLOSED),
                "in_progress": sum(1 for t in tasks if t.get("status") == "in_progress"),
                "open": sum(1 for t in tasks if t.get("status") == "open"),
                "overdue": sum(1 for t in tasks if _is_overdue(t, stamp)),
            }
        }
        if report_type in ("activities", "comprehensive") and self._activities_available():
            window = {}
            if date_from and date_to:
                window = {"date_from": f"{date_from} 00:00:00", "date_to": f"{date_to} 23:59:59"}
            report["activities"] = {
                "total_activities": len(self._activities(user_id=user_id, **window))
            }
        if report_type in ("projects", "comprehensive"):
            report["projects"] = {
                "boards": sorted({t["board_id"] for t in tasks}),
                "total_boards": len({t["board_id"] for t in tasks}),
            }
        return self.get_success_response(
            {
                "user": {"id": user["id"], "name": user.get("display_name"), "email": user.get("email")},
                "report": report,
                "report_type": report_type,
                "filters": {"board_ids": board_ids, "date_from": date_from, "date_to": date_to},
                "generated_at": stamp,
            },
            "Member report retrieved successfully",
        )

    def execute_get_stage_wise_reports(self, args):
        board, error = self._board_access(args)
        if error:
            return error
        stamp = now()
        tasks = self.backend.list_tasks(board_id=board["id"])
        stages = []
        for stage in sorted(self.backend.list_stages(board["id"]), key=lambda s: s.get("position") or 0):
            in_stage = [t for t in tasks if t.get("stage_id") == stage["id"]]
            stages.append(
                dict(
                    {"id": stage["id"], "title": stage.get("title"), "position": stage.get("position")},
                    **_task_counts(in_stage, stamp),
                )
            )
        return self.get_success_response(
            {"board": self._board_ref(board), "stages": stages, "generated_at": stamp},
            "Stage-wise reports retrieved successfully",
        )

    def execute_get_team_workload(self, args):
        period = args.get("period") if args.get("period") in WORKLOAD_PERIODS else "current"
        board_id = _positive_int(args.get("board_id"))
        accessible = self._accessible_ids()
        if board_id and board_id not in accessible:
            return self.get_error_response("Access denied to board", "access_denied")
        board_ids = [board_id] if board_id else accessible
        if not board_ids:
            return self.get_error_response("No accessible boards found", "no_boards_found")

        stamp = now()
        member_ids = []
        for bid in board_ids:
            for member in self.backend.board_members(bid):
                if member.get("id") not in member_ids:
                    member_ids.append(member.get("id"))
        workload = []
        for user_id in member_ids:
            user = self.backend.get_user(user_id)
            if not user:
                continue
            tasks = [
                t for t in self.backend.list_tasks(assignee_id=user_id) if t.get("board_id") in board_ids
            ]
            if period == "current":
                tasks = [t for t in tasks if t.get("status") != CLOSED]
            elif period == "upcoming":
                tasks = [
                    t for t in tasks if t.get("status") == "open" and (t.get("due_at") or "") > stamp
                ]
            else:
                tasks = [t for t in tasks if _is_overdue(t, stamp)]
            workload.append(
                {
                    "user": {"id": user["id"], "name": user.get("display_name"), "email": user.get("email")},
                    "task_counts": {
                        "total": len(tasks),
                        "high_priority": sum(1 for t in tasks if t.get("priority") == "high"),
                        "medium_priority": sum(1 for t in tasks if t.get("priority") == "medium"),
                        "low_priority": sum(1 for t in tasks if t.get("priority") == "low"),
                    },
                    "capacity_indicator": capacity_indicator(len(tasks)),
                }
            )
        return self.get_success_response(
            {"workload": workload, "period": period, "board_id": board_id, "generated_at": stamp},
            "Team workload retrieved successfully",
        )

    def execute_get_activity_timeline(self, args):
        error = self._check_dates(args)
        if error:
            return error
        if not self._activities_available():
            return self.get_error_response(
                "Activity tracking not available", "activities_not_available"
            )
        board_id = _positive_int(args.get("board_id"))
        accessible = self._accessible_ids()
        if board_id and board_id not in accessible:
            return self.get_error_response("Access denied to board", "access_denied")
        date_from, date_to = args.get("date_from") or None, args.get("date_to") or None
        filters = {"board_ids": [board_id] if board_id else accessible}
        user_id = _positive_int(args.get("user_id"))
        if user_id:
            filters["user_id"] = user_id
        if date_from and date_to:
            filters.update(date_from=f"{date_from} 00:00:00", date_to=f"{date_to} 23:59:59")
        page = _positive_int(args.get("page")) or 1
        per_page = min(100, _positive_int(args.get("per_page")) or 50)
        rows, pagination = _paginate(self._activities(**filters), page, per_page)
        return self.get_success_response(
            {
                "timeline": [self._activity_row(a) for a in rows],
                "pagination": pagination,
                "filters": {
                    "board_id": board_id,
                    "user_id": user_id,
                    "date_from": date_from,
                    "date_to": date_to,
                },
                "generated_at": now(),
            },
            "Activity timeline retrieved successfully",
        )

    def execute_get_board_activities(self, args):
        board, error = self._board_access(args)
        if error:
            return error
        if not self._activities_available():
            return self.get_error_response(
                "Activity tracking not available", "activities_not_available"
            )
        page = _positive_int(args.get("page")) or 1
        per_page = min(100, _positive_int(args.get("per_page")) or 20)
        rows, pagination = _paginate(self._activities(board_ids=[board["id"]]), page, per_page)
        return self.get_success_response(
            {
                "board": {"id": board["id"], "title": board.get("title")},
                "activities": [self._activity_row(a) for a in rows],
                "pagination": pagination,
                "generated_at": now(),
            },
            "Board activities retrieved successfully",
        )

"""
InMemoryBackend: a dict-backed FluentBoards store.

Used by the test suite and as a demo backend for the CLI
(``MCP_ADAPTERS_BACKEND=mcp_adapters.fluentboards.memory:demo_backend``).
Records are plain dicts; every read returns a deep copy so callers cannot
mutate the store behind its back.
"""

from __future__ import annotations

import copy
import itertools

from mcp_adapters.fluentboards._base import now
from mcp_adapters.fluentboards.backend import CurrentUser

MANAGE_ROLES = ("manager", "member")
VIEW_ROLES = ("manager", "member", "viewer")


def _out(record):
    return copy.deepcopy(record) if record is not None else None


def _window(items, offset, limit):
    items = items[offset:]
    return items[:limit] if limit else items


class InMemoryBackend:
    """FluentBoards backend held entirely in process memory."""

    def __init__(self, *, active=True, users=None, current_user=None):
        self.active = active
        self._ids = {}
        self.users: dict[int, dict] = {}
        self.boards: dict[int, dict] = {}
        self.stages: dict[int, dict] = {}
        self.tasks: dict[int, dict] = {}
        self.comments: dict[int, dict] = {}
        self.labels: dict[int, dict] = {}
        self.attachments: dict[int, dict] = {}
        self.members: dict[int, dict[int, dict]] = {}
        self.task_label_ids: dict[int, list[int]] = {}
        self.pins: set[tuple[int, int]] = set()
        self.activities: list[dict] = []
        self._current = current_user or CurrentUser()
        for user in users or ():
            self.add_user(**user)

    # ---------------------------------------------------------------------------
    # Seeding
    # ---------------------------------------------------------------------------

    def _next_id(self, table):
        counter = self._ids.setdefault(table, itertools.count(1))
        return next(counter)

    def add_user(self, id=None, **fields):
        user_id = id or self._next_id("users")
        login = fields.get("login") or f"user{user_id}"
        self.users[user_id] = {
            "id": user_id,
            "login": login,
            "email": fields.get("email") or f"{login}@example.com",
            "display_name": fields.get("display_name") or login,
            "first_name": fields.get("first_name", ""),
            "last_name": fields.get("last_name", ""),
            "description": fields.get("description", ""),
            "roles": list(fields.get("roles") or ["subscriber"]),
            "registered": fields.get("registered") or now(),
        }
        return _out(self.users[user_id])

    def act_as(self, user_id, *capabilities):
        """Make ``user_id`` the current user; ``0`` logs out."""
        self._current = CurrentUser(
            id=user_id, logged_in=bool(user_id), capabilities=frozenset(capabilities)
        )
        return self._current

    def _log(self, action, board_id, *, task_id=None, object_type="board", object_id=None, **extra):
        self.activities.append(
            {
                "id": self._next_id("activities"),
                "action": action,
                "board_id": board_id,
                "task_id": task_id,
                "object_type": object_type,
                "object_id": object_id if object_id is not None else board_id,
                "description": extra.get("description", ""),
                "old_value": extra.get("old_value"),
                "new_value": extra.get("new_value"),
                "created_by": self._current.id or None,
                "created_at": now(),
            }
        )

    # ---------------------------------------------------------------------------
    # Environment and users
    # ---------------------------------------------------------------------------

    def is_active(self):
        return self.active

    def current_user(self):
        return self._current

    def user_can(self, action, board_id):
        member = self.members.get(board_id, {}).get(self._current.id)
        if member is None:
            return False
        roles = MANAGE_ROLES if action == "manage_board" else VIEW_ROLES
        return member.get("role") in roles

    def get_user(self, user_id):
        return _out(self.users.get(user_id))

    def list_users(self, *, search="", offset=0, limit=20):
        needle = (search or "").lower()
        keys = ("login", "email", "display_name", "first_name", "last_name")
        found = [
            user
            for _, user in sorted(self.users.items())
            if not needle or any(needle in (user.get(k) or "").lower() for k in keys)
        ]
        return _out(_window(found, offset, limit))

    # ---------------------------------------------------------------------------
    # Boards
    # ---------------------------------------------------------------------------

    def _visible_to(self, board, user_id):
        return board.get("created_by") == user_id or user_id in self.members.get(board["id"], {})

    def list_boards(self, *, user_id=None, board_type=None, search="", archived=False, offset=0, limit=20):
        needle = (search or "").lower()
        boards = [
            board
            for _, board in sorted(self.boards.items())
            if bool(board.get("archived_at")) == archived
            and (board_type is None or board.get("type") == board_type)
            and (not needle or needle in (board.get("title") or "").lower())
            and (user_id is None or self._visible_to(board, user_id))
        ]
        return _out(_window(boards, offset, limit))

    def get_board(self, board_id):
        return _out(self.boards.get(board_id))

    def create_board(self, data):
        board_id = self._next_id("boards")
        stamp = now()
        board = {
            "id": board_id,
            "title": "",
            "description": "",
            "type": "to-do",
            "currency": None,
            "background": None,
            "settings": {},
            "created_by": None,
            "archived_at": None,
        }
        board.update(copy.deepcopy(data))
        board.update(id=board_id, created_at=stamp, updated_at=stamp)
        self.boards[board_id] = board
        self.members[board_id] = {}
        if board.get("created_by"):
            self.add_board_member(board_id, board["created_by"], "manager")
        self._log("board_created", board_id, description=board["title"])
        return _out(board)

    def update_board(self, board_id, data):
        board = self.boards[board_id]
        board.update(copy.deepcopy(data))
        board["updated_at"] = now()
        return _out(board)

    def delete_board(self, board_id):
        for task_id in [t for t, task in self.tasks.items() if task["board_id"] == board_id]:
            self.delete_task(task_id)
        for table in (self.stages, self.labels):
            for key in [k for k, row in table.items() if row["board_id"] == board_id]:
                del table[key]
        self.members.pop(board_id, None)
        self.pins = {pin for pin in self.pins if pin[0] != board_id}
        del self.boards[board_id]

    def duplicate_board(self, board_id, title, user_id):
        source = self.boards[board_id]
        data = {
            k: copy.deepcopy(v)
            for k, v in source.items()
            if k not in ("id", "created_at", "updated_at", "archived_at")
        }
        data.update(title=title, created_by=user_id)
        board = self.create_board(data)
        for stage in self.list_stages(board_id):
            self.create_stage(board["id"], {k: v for k, v in stage.items() if k not in ("id", "board_id")})
        for label in self.list_labels(board_id):
            self.create_label(board["id"], {k: v for k, v in label.items() if k not in ("id", "board_id")})
        return board

    def is_pinned(self, board_id, user_id):
        return (board_id, user_id) in self.pins

    def pin_board(self, board_id, user_id):
        self.pins.add((board_id, user_id))

    def unpin_board(self, board_id, user_id):
        if (board_id, user_id) not in self.pins:
            return False
        self.pins.discard((board_id, user_id))
        return True

    def board_members(self, board_id):
        return _out(list(self.members.get(board_id, {}).values()))

    def add_board_member(self, board_id, user_id, role):
        member = {"id": user_id, "role": role, "permissions": [], "joined_at": now()}
        self.members.setdefault(board_id, {})[user_id] = member
        return _out(member)

    def remove_board_member(self, board_id, user_id):
        self.members.get(board_id, {}).pop(user_id, None)

    def update_board_member(self, board_id, user_id, data):
        member = self.members[board_id][user_id]
        member.update(copy.deepcopy(data))
        return _out(member)

    # ---------------------------------------------------------------------------
    # Stages
    # ---------------------------------------------------------------------------

    def list_stages(self, board_id, *, archived=False):
        stages = [
            stage
            for stage in self.stages.values()
            if stage["board_id"] == board_id and bool(stage.get("archived_at")) == archived
        ]
        return _out(sorted(stages, key=lambda s: (s.get("position") or 0, s["id"])))

    def get_stage(self, stage_id):
        return _out(self.stages.get(stage_id))

    def create_stage(self, board_id, data):
        stage_id = self._next_id("stages")
        stamp = now()
        stage = {"title": "", "description": "", "position": 0, "bg_color": None, "settings": {}, "archived_at": None}
        stage.update(copy.deepcopy(data))
        stage.update(id=stage_id, board_id=board_id, created_at=stamp, updated_at=stamp)
        self.stages[stage_id] = stage
        return _out(stage)

    def update_stage(self, stage_id, data):
        stage = self.stages[stage_id]
        stage.update(copy.deepcopy(data))
        stage["updated_at"] = now()
        return _out(stage)

    # ---------------------------------------------------------------------------
    # Tasks
    # ---------------------------------------------------------------------------

    def list_tasks(self, *, board_id=None, stage_id=None, assignee_id=None, archived=False):
        tasks = [
            task
            for _, task in sorted(self.tasks.items())
            if bool(task.get("archived_at")) == archived
            and (board_id is None or task["board_id"] == board_id)
            and (stage_id is None or task.get("stage_id") == stage_id)
            and (assignee_id is None or assignee_id in (task.get("assignees") or []))
        ]
        return _out(tasks)

    def get_task(self, task_id):
        return _out(self.tasks.get(task_id))

    def create_task(self, board_id, data):
        task_id = self._next_id("tasks")
        stamp = now()
        task = {
            "title": "",
            "description": "",
            "status": "open",
            "priority": "low",
            "position": 0,
            "due_at": None,
            "started_at": None,
            "assignees": [],
            "created_by": None,
            "archived_at": None,
        }
        task.update(copy.deepcopy(data))
        task.update(id=task_id, board_id=board_id, created_at=stamp, updated_at=stamp)
        self.tasks[task_id] = task
        self._log("task_created", board_id, task_id=task_id, object_type="task", object_id=task_id,
                  description=task["title"])
        return _out(task)

    def update_task(self, task_id, data):
        task = self.tasks[task_id]
        old_stage = task.get("stage_id")
        task.update(copy.deepcopy(data))
        task["updated_at"] = now()
        if "stage_id" in data and data["stage_id"] != old_stage:
            self._log("task_stage_changed", task["board_id"], task_id=task_id, object_type="task",
                      object_id=task_id, old_value=old_stage, new_value=data["stage_id"])
        return _out(task)

    def delete_task(self, task_id):
        task = self.tasks.pop(task_id)
        for table in (self.comments, self.attachments):
            for key in [k for k, row in table.items() if row["task_id"] == task_id]:
                del table[key]
        self.task_label_ids.pop(task_id, None)
        self._log("task_deleted", task["board_id"], task_id=None, object_type="task",
                  object_id=task_id, description=task.get("title", ""))

    # ---------------------------------------------------------------------------
    # Comments
    # ---------------------------------------------------------------------------

    def list_comments(self, task_id):
        return _out([c for _, c in sorted(self.comments.items()) if c["task_id"] == task_id])

    def get_comment(self, comment_id):
        return _out(self.comments.get(comment_id))

    def create_comment(self, task_id, data):
        comment_id = self._next_id("comments")
        stamp = now()
        comment = {"content": "", "type": "comment", "parent_id": None, "is_private": False, "created_by": None}
        comment.update(copy.deepcopy(data))
        comment.update(id=comment_id, task_id=task_id, created_at=stamp, updated_at=stamp)
        self.comments[comment_id] = comment
        board_id = self.tasks[task_id]["board_id"] if task_id in self.tasks else None
        self._log("comment_added", board_id, task_id=task_id, object_type="task", object_id=task_id)
        return _out(comment)

    def update_comment(self, comment_id, data):
        comment = self.comments[comment_id]
        comment.update(copy.deepcopy(data))
        return _out(comment)

    def delete_comment(self, comment_id):
        """Delete a comment and its replies; returns how many replies went with it."""
        replies = [k for k, c in self.comments.items() if c.get("parent_id") == comment_id]
        for key in replies:
            del self.comments[key]
        del self.comments[comment_id]
        return len(replies)

    # ---------------------------------------------------------------------------
    # Labels
    # ---------------------------------------------------------------------------

    def list_labels(self, board_id):
        return _out([l for _, l in sorted(self.labels.items()) if l["board_id"] == board_id])

    def get_label(self, label_id):
        return _out(self.labels.get(label_id))

    def create_label(self, board_id, data):
        label_id = self._next_id("labels")
        stamp = now()
        label = {"title": "", "bg_color": None, "color": None}
        label.update(copy.deepcopy(data))
        label.update(id=label_id, board_id=board_id, created_at=stamp, updated_at=stamp)
        self.labels[label_id] = label
        return _out(label)

    def update_label(self, label_id, data):
        label = self.labels[label_id]
        label.update(copy.deepcopy(data))
        return _out(label)

    def delete_label(self, label_id):
        del self.labels[label_id]
        for ids in self.task_label_ids.values():
            if label_id in ids:
                ids.remove(label_id)

    def task_labels(self, task_id):
        return _out([self.labels[i] for i in self.task_label_ids.get(task_id, []) if i in self.labels])

    def attach_label(self, task_id, label_id):
        ids = self.task_label_ids.setdefault(task_id, [])
        if label_id in ids:
            return False
        ids.append(label_id)
        return True

    def detach_label(self, task_id, label_id):
        ids = self.task_label_ids.get(task_id, [])
        if label_id not in ids:
            return False
        ids.remove(label_id)
        return True

    # ---------------------------------------------------------------------------
    # Attachments
    # ---------------------------------------------------------------------------

    def list_attachments(self, task_id):
        return _out([a for _, a in sorted(self.attachments.items()) if a["task_id"] == task_id])

    def get_attachment(self, attachment_id):
        return _out(self.attachments.get(attachment_id))

    def create_attachment(self, task_id, data):
        attachment_id = self._next_id("attachments")
        stamp = now()
        attachment = {
            "title": "",
            "url": "",
            "type": "link",
            "description": "",
            "file_size": None,
            "mime_type": None,
            "created_by": None,
        }
        attachment.update(copy.deepcopy(data))
        attachment.update(id=attachment_id, task_id=task_id, created_at=stamp, updated_at=stamp)
        self.attachments[attachment_id] = attachment
        return _out(attachment)

    def update_attachment(self, attachment_id, data):
        attachment = self.attachments[attachment_id]
        attachment.update(copy.deepcopy(data))
        return _out(attachment)

    def delete_attachment(self, attachment_id):
        del self.attachments[attachment_id]

    # ---------------------------------------------------------------------------
    # Activity
    # ---------------------------------------------------------------------------

    def list_activities(self, *, board_ids=None, user_id=None, date_from=None, date_to=None, limit=50):
        found = [
            a
            for a in self.activities
            if (board_ids is None or a.get("board_id") in board_ids)
            and (user_id is None or a.get("created_by") == user_id)
            and (date_from is None or a["created_at"] >= date_from)
            and (date_to is None or a["created_at"] <= date_to)
        ]
        found.sort(key=lambda a: (a["created_at"], a["id"]), reverse=True)
        return _out(found[:limit] if limit else found)


def demo_backend():
    """A small seeded store: one admin, one member and a three-stage board."""
    backend = InMemoryBackend(
        users=[
            {"login": "admin", "display_name": "Site Admin", "roles": ["administrator"]},
            {"login": "sam", "display_name": "Sam Rivera", "roles": ["editor"]},
        ]
    )
    backend.act_as(1, "manage_options")
    board = backend.create_board({"title": "Product Launch", "type": "to-do", "created_by": 1})
    backend.add_board_member(board["id"], 2, "member")
    for position, title in enumerate(("Open", "In Progress", "Completed"), start=1):
        backend.create_stage(board["id"], {"title": title, "position": position})
    return backend

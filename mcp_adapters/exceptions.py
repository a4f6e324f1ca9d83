"""
mcp-adapters exception hierarchy.

All custom exceptions live here to avoid circular imports.
"""


class AdapterError(Exception):
    """Exit code 1: validation, lookup, dispatch and transport errors."""

    exit_code = 1


class SetupError(AdapterError):
    """Exit code 2: missing backend, unreadable clients file, bad config."""

    exit_code = 2


class AbilityNotFoundError(AdapterError):
    """Raised when executing an ability name the registry does not hold."""

    def __init__(self, name):
        super().__init__(f"[ERROR] Ability '{name}' is not registered.")
        self.name = name


class AbilityPermissionError(AdapterError):
    """Raised when an ability's permission callback rejects the caller."""

    def __init__(self, name):
        super().__init__(f"[ERROR] Permission denied for ability '{name}'.")
        self.name = name


class HTTPError(Exception):
    """Raised by _http_post for HTTP errors that callers want to handle."""

    def __init__(self, code, reason, body, headers=None):
        self.code = code
        self.reason = reason
        self.body = body
        self.headers = headers or {}

"""
Shared pure-utility and diagnostic helpers for mcp-adapters.

Diagnostics go to stderr as single tagged lines; nothing here raises.
"""

import json
import sys
import urllib.parse

from mcp_adapters import config

_SENSITIVE_QUERY_KEYS = frozenset({"token", "key", "api_key", "apikey", "access_token"})


def _log_error(message):
    """Print an [ERROR] diagnostic to stderr unless running quiet."""
    if config.RUNTIME_QUIET:
        return
    print(f"[ERROR] {message}", file=sys.stderr)


def _log_warning(message):
    """Print a [WARN] diagnostic to stderr unless running quiet."""
    if config.RUNTIME_QUIET:
        return
    print(f"[WARN] {message}", file=sys.stderr)


def _log_http_event(**fields):
    """Emit structured HTTP logs to stderr when enabled."""
    if not config.HTTP_LOG_ENABLED:
        return
    print("[HTTP] " + json.dumps(fields, ensure_ascii=False, sort_keys=True), file=sys.stderr)


def _sanitize_url_for_log(url):
    """Mask sensitive query params in URLs before logging."""
    parsed = urllib.parse.urlsplit(url)
    if not parsed.query:
        return url
    pairs = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)
    masked = []
    for key, value in pairs:
        if key.lower() in _SENSITIVE_QUERY_KEYS:
            masked.append((key, "***"))
        else:
            masked.append((key, value))
    safe_query = urllib.parse.urlencode(masked, doseq=True)
    return urllib.parse.urlunsplit(
        (parsed.scheme, parsed.netloc, parsed.path, safe_query, parsed.fragment)
    )


def _positive_int(value):
    """Coerce an id-like argument to a positive int, or return None."""
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _text(value):
    """Strip a text argument; non-strings become empty."""
    if value is None:
        return ""
    return str(value).strip()

"""Error and observability handlers a server manifest plugs in."""

from mcp_adapters._utils import _log_error


class ErrorLogErrorHandler:
    """Report server errors as ``[ERROR]`` lines on stderr."""

    def log(self, message, context=None, error_type="error"):
        line = f"[{error_type}] {message}"
        if context:
            line += " " + ", ".join(f"{k}={v}" for k, v in sorted(context.items()))
        _log_error(line)


class NullObservabilityHandler:
    """Accepts events and timings and drops them."""

    def record_event(self, event, **tags):
        return None

    def record_timing(self, metric, duration_ms, **tags):
        return None


def resolve_handler(handler, default):
    """Accept a handler class or instance; ``None`` falls back to ``default``."""
    if handler is None:
        handler = default
    return handler() if isinstance(handler, type) else handler

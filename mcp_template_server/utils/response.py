"""Response envelopes returned by Dispatcher.dispatch."""

from typing import Any, Dict, Optional


def is_success(envelope: Dict[str, Any]) -> bool:
    """Check if a dispatch envelope reports success."""
    return bool(envelope.get("ok"))


def success_response(data: Any) -> Dict[str, Any]:
    """Wrap a handler result, unmodified, as ``{"ok": True, "data": ...}``."""
    return {"ok": True, "data": data}


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Build ``{"ok": False, "error": {...}}`` for a failed dispatch.

    Args:
        message: DispatchError message shown to the caller
        code: DispatchError code, e.g. ``OPERATION_NOT_FOUND``
        details: Operation name and, when present, the handler's exception type

    Returns:
        Error envelope; ``code`` and ``details`` are omitted when empty
    """
    error: Dict[str, Any] = {"message": message}
    if code:
        error["code"] = code
    if details:
        error["details"] = details
    return {"ok": False, "error": error}

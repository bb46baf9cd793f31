from typing import Any, Optional


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    """Success envelope shared by every route."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def fail(message: str) -> dict:
    return {"success": False, "message": message}

from typing import Any

from database import serialize


def ok(message: str, data: Any = None) -> dict:
    return {"success": True, "message": message, "data": serialize(data)}


def fail(message: str, data: Any = None) -> dict:
    return {"success": False, "message": message, "data": serialize(data)}

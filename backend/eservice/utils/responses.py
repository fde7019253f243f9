"""Success envelope shared by the API endpoints"""
from typing import Any, List, Optional


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    pagination: Optional[dict] = None,
    warnings: Optional[List[str]] = None,
) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination
    if warnings:
        body["warnings"] = warnings
    return body

"""Dress Rental — API response helpers."""
from typing import Any


def success_response(data: Any, meta: dict | None = None) -> dict:
    """Standard unified response envelope: {data, error, meta}."""
    return {"data": data, "error": None, "meta": meta}

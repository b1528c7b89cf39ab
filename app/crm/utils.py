from __future__ import annotations

from typing import Any

from flask import request


def request_payload() -> dict[str, Any]:
    """Body fields from a JSON object or a url-encoded form; empty when neither is present."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()

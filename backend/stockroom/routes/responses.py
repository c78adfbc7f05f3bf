# Overview: Discriminated JSON results shared by the API routes.

from flask import jsonify

from ..serialization import jsonable


def success(status: int = 200, **payload):
    return jsonify({"success": True, **jsonable(payload)}), status


def failure(message: str, status: int, details: dict | None = None):
    body = {"success": False, "error": message}
    if details:
        body["details"] = jsonable(details)
    return jsonify(body), status

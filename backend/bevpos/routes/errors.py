# Overview: Shared JSON error responses for the API blueprints.

from flask import jsonify


def error_response(exc: Exception, status: int, **extra):
    """
    {"error": message, "kind": kind} where kind tells the client which
    message to show (validation, not_found, conflict, duplicate, remote).
    """
    body = {"error": str(exc), "kind": getattr(exc, "kind", "remote")}
    details = getattr(exc, "details", None)
    if details:
        body["details"] = details
    body.update(extra)
    return jsonify(body), status


def internal_error():
    return jsonify({"error": "Internal server error", "kind": "remote"}), 500

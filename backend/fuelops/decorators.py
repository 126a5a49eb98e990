# Overview: Request decorators for API routes: acting user and error translation.

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import ServiceError
from .validation import parse_id


def with_actor(f):
    """
    Establish the acting user for the request.

    Authentication is out of scope: g.user_id is the X-User-Id header when
    present, otherwise the configured DEFAULT_USER_ID.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = request.headers.get("X-User-Id")
        if header:
            try:
                g.user_id = parse_id(header, "X-User-Id")
            except ServiceError as exc:
                return jsonify({"error": str(exc)}), 400
        else:
            g.user_id = current_app.config.get("DEFAULT_USER_ID")
        return f(*args, **kwargs)

    return decorated_function


def error_response(exc: ServiceError):
    body = {"error": str(exc)}
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), exc.status_code


def handle_service_errors(f):
    """
    Translate service errors into JSON responses.

    ServiceError subclasses map to their status_code; anything else is
    logged with a traceback and reported as a 500 without internals.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ServiceError as exc:
            if exc.status_code >= 500:
                current_app.logger.exception("Store failure in %s %s", request.method, request.path)
            return error_response(exc)
        except Exception:
            current_app.logger.exception("Unexpected error in %s %s", request.method, request.path)
            return jsonify({"error": "Internal server error"}), 500

    return decorated_function

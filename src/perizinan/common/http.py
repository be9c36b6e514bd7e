from __future__ import annotations

import logging
from typing import Any, Dict

from flask import jsonify, request

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    PartialProvisioning,
    RecordNotFound,
    StoreUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)


def payload() -> Dict[str, Any]:
    """Request body as a dict, from JSON or form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def ok(status: int = 200, **data: Any):
    return jsonify({"success": True, **data}), status


def fail(message: str, status: int = 400, **data: Any):
    return jsonify({"success": False, "message": message, **data}), status


def status_for(e: DomainError) -> int:
    if isinstance(e, RecordNotFound):
        return 404
    if isinstance(e, ValidationError):
        return 400
    if isinstance(e, AuthenticationError):
        return 401
    if isinstance(e, AuthorizationError):
        return 403
    if isinstance(e, StoreUnavailable):
        return 503
    if isinstance(e, PartialProvisioning):
        return 500
    return 400


def domain_error(e: DomainError):
    return fail(str(e), status_for(e))


def system_error(action: str):
    logger.exception("system error while %s", action)
    return fail(f"System error while {action}", 500)

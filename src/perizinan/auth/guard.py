from __future__ import annotations

import inspect
from functools import wraps

from flask import g, jsonify, redirect, request, session, url_for

from ..core.enums import Role
from ..core.exceptions import NotSignedIn
from .clients import ClientSessions
from .gate import GateOutcome, decide
from .session import SessionStore

CLIENT_KEY = "client_id"


async def client_context(clients: ClientSessions) -> SessionStore:
    """Return this browser's session store; signed-out browsers get a throwaway one."""
    client_id, store = await clients.ensure(session.get(CLIENT_KEY))
    if client_id is None:
        session.pop(CLIENT_KEY, None)
    return store


def _requested_location() -> str:
    if request.query_string:
        return request.full_path
    return request.path


def protected(clients: ClientSessions, *roles: Role):
    """Gate a view by role; the signed-in session is placed on ``flask.g``."""
    allowed = frozenset(roles)

    def decorator(view):
        @wraps(view)
        async def wrapper(*args, **kwargs):
            store = await client_context(clients)
            decision = decide(store.session, store.loading, allowed, _requested_location())

            if decision.outcome == GateOutcome.SHOW_LOADING:
                return jsonify({"success": False, "message": "Loading..."}), 503
            if decision.outcome == GateOutcome.REDIRECT_LOGIN:
                return redirect(url_for("login", next=decision.target))
            if decision.outcome == GateOutcome.REDIRECT_DEFAULT:
                return redirect(url_for(decision.target))

            g.client = store
            g.session = store.session
            result = view(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

        return wrapper

    return decorator


def acting_role() -> Role:
    current = getattr(g, "session", None)
    if current is None:
        raise NotSignedIn("No user is currently signed in")
    return current.role

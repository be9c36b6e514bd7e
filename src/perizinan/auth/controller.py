from __future__ import annotations

from flask import Flask, redirect, request, session, url_for

from ..common.http import domain_error, fail, ok, payload, system_error
from ..container import Container
from ..core.exceptions import DomainError
from .gate import GateOutcome, resolve_dashboard
from .guard import CLIENT_KEY, client_context


def _safe_next(target: str) -> str:
    # Only same-site relative paths are followed after login.
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("dashboard")


def register(app: Flask, container: Container) -> None:
    clients = container.clients

    @app.route("/", methods=["GET"], endpoint="home")
    def home():
        return redirect(url_for("dashboard"))

    @app.route("/login", methods=["GET", "POST"], endpoint="login")
    async def login():
        store = await client_context(clients)

        if request.method == "GET":
            if store.session is not None:
                return redirect(url_for("dashboard"))
            return ok(message="Please sign in", next=request.args.get("next"))

        data = payload()
        try:
            current = await store.login((data.get("email") or "").strip(), data.get("password") or "")
        except DomainError as e:
            if store.session is None:
                clients.close(session.pop(CLIENT_KEY, None))
            return domain_error(e)
        except Exception:
            return system_error("signing in")

        if clients.get(session.get(CLIENT_KEY)) is not store:
            session[CLIENT_KEY] = clients.register(store)

        return ok(
            message="Signed in",
            user={"id": current.identity_id, "email": current.email, "role": current.role.value},
            redirect=_safe_next(data.get("next") or request.args.get("next") or ""),
        )

    @app.route("/logout", methods=["POST"], endpoint="logout")
    async def logout():
        client_id = session.pop(CLIENT_KEY, None)
        store = clients.get(client_id)
        if store is not None:
            try:
                await store.logout()
            except Exception:
                return system_error("signing out")
            finally:
                clients.close(client_id)
        return ok(message="Signed out", redirect=url_for("login"))

    @app.route("/dashboard", methods=["GET"], endpoint="dashboard")
    async def dashboard():
        store = await client_context(clients)
        decision = resolve_dashboard(store.session, store.loading)

        if decision.outcome == GateOutcome.SHOW_LOADING:
            return fail("Loading...", 503)
        if decision.outcome == GateOutcome.REDIRECT_LOGIN:
            return redirect(url_for("login"))
        if decision.outcome == GateOutcome.UNAUTHORIZED:
            return fail("Unauthorized", 403)
        return redirect(url_for(decision.target))

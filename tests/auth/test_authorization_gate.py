from __future__ import annotations

import pytest

from perizinan.auth.gate import GateOutcome, decide, resolve_dashboard
from perizinan.auth.session import Session
from perizinan.core.enums import Role


def _session(role):
    return Session(identity_id="u1", email="u1@school.id", role=role)


@pytest.mark.parametrize("session", [None, _session(Role.ADMIN)])
def test_loading_always_shows_placeholder(session):
    assert decide(session, True, {Role.ADMIN}).outcome == GateOutcome.SHOW_LOADING


def test_no_session_redirects_to_login_with_requested_location():
    decision = decide(None, False, {Role.APPROVER}, "/deputy?page=2")

    assert decision.outcome == GateOutcome.REDIRECT_LOGIN
    assert decision.target == "/deputy?page=2"


def test_wrong_role_redirects_to_default_dashboard():
    decision = decide(_session(Role.SUBMITTER), False, {Role.APPROVER})

    assert decision.outcome == GateOutcome.REDIRECT_DEFAULT
    assert decision.target == "dashboard"


def test_allowed_role_renders():
    assert decide(_session(Role.ADMIN), False, {Role.ADMIN}).outcome == GateOutcome.RENDER


@pytest.mark.parametrize(
    "role, target",
    [
        (Role.ADMIN, "admin_dashboard"),
        (Role.APPROVER, "deputy_dashboard"),
        (Role.SUBMITTER, "teacher_dashboard"),
    ],
)
def test_dashboard_routes_each_role_to_its_view(role, target):
    decision = resolve_dashboard(_session(role), False)

    assert decision.outcome == GateOutcome.REDIRECT_DEFAULT
    assert decision.target == target


def test_dashboard_with_unrecognized_role_is_terminal():
    decision = resolve_dashboard(_session("kepala"), False)

    assert decision.outcome == GateOutcome.UNAUTHORIZED
    assert decision.target is None


def test_dashboard_while_loading_and_signed_out():
    assert resolve_dashboard(None, True).outcome == GateOutcome.SHOW_LOADING
    assert resolve_dashboard(None, False).outcome == GateOutcome.REDIRECT_LOGIN

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Collection, Dict, Optional

from ..core.enums import Role
from .session import Session


class GateOutcome(str, Enum):
    SHOW_LOADING = "show_loading"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_DEFAULT = "redirect_default"
    RENDER = "render"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class GateDecision:
    outcome: GateOutcome
    # REDIRECT_LOGIN: location to return to after login.
    # Dashboard redirects: endpoint of the role's dashboard.
    target: Optional[str] = None


DEFAULT_DASHBOARD = "dashboard"

DASHBOARD_BY_ROLE: Dict[Role, str] = {
    Role.ADMIN: "admin_dashboard",
    Role.APPROVER: "deputy_dashboard",
    Role.SUBMITTER: "teacher_dashboard",
}


def decide(
    session: Optional[Session],
    loading: bool,
    required_roles: Collection[Role],
    requested_location: Optional[str] = None,
) -> GateDecision:
    """Decide what a protected view shows; rules are checked in order."""
    if loading:
        return GateDecision(GateOutcome.SHOW_LOADING)
    if session is None:
        return GateDecision(GateOutcome.REDIRECT_LOGIN, target=requested_location)
    if session.role not in required_roles:
        return GateDecision(GateOutcome.REDIRECT_DEFAULT, target=DEFAULT_DASHBOARD)
    return GateDecision(GateOutcome.RENDER)


def resolve_dashboard(session: Optional[Session], loading: bool) -> GateDecision:
    """Role-neutral dashboard: send each role to its own view.

    An unrecognized role ends at UNAUTHORIZED instead of redirecting again.
    """
    if loading:
        return GateDecision(GateOutcome.SHOW_LOADING)
    if session is None:
        return GateDecision(GateOutcome.REDIRECT_LOGIN)
    target = DASHBOARD_BY_ROLE.get(session.role)
    if target is None:
        return GateDecision(GateOutcome.UNAUTHORIZED)
    return GateDecision(GateOutcome.REDIRECT_DEFAULT, target=target)

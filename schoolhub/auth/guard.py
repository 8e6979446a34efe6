"""Role-gated navigation.

``evaluate_guard`` is a pure function of the session state and the role a view
requires. ``schoolhub.auth.rbac.require_role`` applies it to routes.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel

from schoolhub.auth.schemas import SessionState
from schoolhub.core.enums import UserRole

LOGIN_ROUTE = "/login"

ROLE_HOME = {
    UserRole.ADMIN: "/admin",
    UserRole.TEACHER: "/teacher",
    UserRole.STUDENT: "/student",
}


def home_for(role: Union[UserRole, str]) -> str:
    return ROLE_HOME[UserRole(role)]


class GuardOutcome(str, Enum):
    PLACEHOLDER = "placeholder"
    REDIRECT = "redirect"
    RENDER = "render"


class GuardDecision(BaseModel):
    outcome: GuardOutcome
    target: Optional[str] = None


class GuardRedirect(Exception):
    """Raised by guarded routes; the app answers with a redirect to ``target``."""

    def __init__(self, target: str) -> None:
        super().__init__(target)
        self.target = target


def evaluate_guard(state: SessionState, required_role: Optional[UserRole] = None) -> GuardDecision:
    if state.loading:
        return GuardDecision(outcome=GuardOutcome.PLACEHOLDER)
    if state.identity is None:
        return GuardDecision(outcome=GuardOutcome.REDIRECT, target=LOGIN_ROUTE)
    if required_role is not None and state.identity.role != required_role:
        return GuardDecision(outcome=GuardOutcome.REDIRECT, target=home_for(state.identity.role))
    return GuardDecision(outcome=GuardOutcome.RENDER)

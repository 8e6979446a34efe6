"""Unit tests for the role guard decision table."""

from uuid import uuid4

import pytest

from schoolhub.auth.guard import (
    LOGIN_ROUTE,
    ROLE_HOME,
    GuardOutcome,
    evaluate_guard,
    home_for,
)
from schoolhub.auth.schemas import Identity, SessionState
from schoolhub.core.enums import UserRole


def _identity(role: UserRole) -> Identity:
    return Identity(
        id=uuid4(),
        first_name="Ada",
        last_name="Lovelace",
        email=f"{role.value}@school.com",
        role=role,
    )


@pytest.mark.parametrize("required", [None, UserRole.ADMIN, UserRole.TEACHER, UserRole.STUDENT])
def test_loading_session_renders_placeholder(required) -> None:
    """No redirect is decided while the session is being restored."""
    state = SessionState(identity=_identity(UserRole.ADMIN), loading=True)
    decision = evaluate_guard(state, required)
    assert decision.outcome == GuardOutcome.PLACEHOLDER
    assert decision.target is None


@pytest.mark.parametrize("required", [None, UserRole.ADMIN, UserRole.TEACHER, UserRole.STUDENT])
def test_signed_out_redirects_to_login(required) -> None:
    decision = evaluate_guard(SessionState(identity=None, loading=False), required)
    assert decision.outcome == GuardOutcome.REDIRECT
    assert decision.target == LOGIN_ROUTE


@pytest.mark.parametrize("role", list(UserRole))
@pytest.mark.parametrize("required", list(UserRole))
def test_role_mismatch_redirects_to_own_home(role: UserRole, required: UserRole) -> None:
    decision = evaluate_guard(SessionState(identity=_identity(role), loading=False), required)
    if role == required:
        assert decision.outcome == GuardOutcome.RENDER
    else:
        assert decision.outcome == GuardOutcome.REDIRECT
        assert decision.target == ROLE_HOME[role]


def test_no_required_role_renders_for_any_identity() -> None:
    for role in UserRole:
        decision = evaluate_guard(SessionState(identity=_identity(role), loading=False))
        assert decision.outcome == GuardOutcome.RENDER


def test_home_routes() -> None:
    assert home_for(UserRole.ADMIN) == "/admin"
    assert home_for("teacher") == "/teacher"
    assert home_for(UserRole.STUDENT) == "/student"

from typing import Optional

from fastapi import Depends, HTTPException, status

from schoolhub.auth.dependencies import get_session_state
from schoolhub.auth.guard import GuardOutcome, GuardRedirect, evaluate_guard
from schoolhub.auth.schemas import Identity, SessionState
from schoolhub.core.enums import UserRole


def require_role(required_role: Optional[UserRole] = None):
    """
    Dependency factory gating a route by role.

    Example:
        identity: Identity = Depends(require_role(UserRole.TEACHER))
    """

    async def _guard(state: SessionState = Depends(get_session_state)) -> Identity:
        decision = evaluate_guard(state, required_role)
        if decision.outcome == GuardOutcome.PLACEHOLDER:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Session is still loading",
            )
        if decision.outcome == GuardOutcome.REDIRECT:
            raise GuardRedirect(decision.target)
        return state.identity

    return _guard


require_admin = require_role(UserRole.ADMIN)
require_teacher = require_role(UserRole.TEACHER)
require_student = require_role(UserRole.STUDENT)

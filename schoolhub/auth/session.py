"""Tracks who is signed in for the lifetime of one request.

The store starts in the loading phase. ``restore`` (run once when a request
arrives) resolves the bearer token into an identity; after it returns,
``state.loading`` is False and guards may decide. ``sign_in`` and ``sign_out``
move the store between signed-in and signed-out, notifying every subscriber.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth import services
from schoolhub.auth.schemas import Identity, LoginResponse, SessionState

logger = logging.getLogger(__name__)

Listener = Callable[[SessionState], None]


class SessionStore:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db
        self._state = SessionState(identity=None, loading=True)
        self._token: Optional[str] = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._state.identity

    @property
    def token(self) -> Optional[str]:
        return self._token

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set(self, identity: Optional[Identity], loading: bool) -> None:
        self._state = SessionState(identity=identity, loading=loading)
        for listener in list(self._listeners):
            listener(self._state)

    async def restore(self, token: Optional[str]) -> SessionState:
        self._set(None, loading=True)
        identity = await services.resolve_session(self._db, token) if token else None
        self._token = token if identity else None
        self._set(identity, loading=False)
        return self._state

    async def sign_in(self, email: str, password: str) -> LoginResponse:
        """Raises AuthError on bad credentials; the store keeps its previous state."""
        result = await services.sign_in(self._db, email, password)
        self._token = result.access_token
        self._set(result.user, loading=False)
        return result

    async def sign_out(self) -> None:
        if self._token:
            session_id = services.session_id_from_token(self._token)
            if session_id is not None:
                await services.sign_out(self._db, session_id)
            if self.identity is not None:
                logger.info("Signed out %s", self.identity.email)
        self._token = None
        self._set(None, loading=False)

import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

import jwt

from community.core.errors import Unauthorized

logger = logging.getLogger(__name__)

SIGNED_IN = "signed_in"
SIGNED_OUT = "signed_out"


@dataclass(frozen=True, slots=True)
class SessionInfo:
    user_id: UUID
    email: str | None
    access_token: str

    @classmethod
    def from_access_token(cls, access_token: str) -> "SessionInfo":
        # the provider already verified this token when issuing it; the API verifies it again
        claims = jwt.decode(access_token, options={"verify_signature": False})
        return cls(user_id=UUID(str(claims["sub"])), email=claims.get("email"), access_token=access_token)


SessionListener = Callable[[str, SessionInfo | None], None]


class ClientSession:
    """Current signed-in identity for the client view models.

    Holds no ambient state: create one per app, ``initialize()`` it, pass it
    to the components that need it and ``teardown()`` when done.
    """

    def __init__(self) -> None:
        self._current: SessionInfo | None = None
        self._listeners: list[SessionListener] = []
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, info: SessionInfo | None = None) -> None:
        self._initialized = True
        if info is not None:
            self.sign_in(info)

    def teardown(self) -> None:
        self._current = None
        self._listeners.clear()
        self._initialized = False

    def current(self) -> SessionInfo | None:
        return self._current

    def require_user_id(self) -> UUID:
        if self._current is None:
            raise Unauthorized()
        return self._current.user_id

    @property
    def access_token(self) -> str | None:
        return self._current.access_token if self._current else None

    def sign_in(self, info: SessionInfo) -> None:
        self._current = info
        self._notify(SIGNED_IN)

    def sign_out(self) -> None:
        if self._current is None:
            return
        self._current = None
        self._notify(SIGNED_OUT)

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self._current)
            except Exception:  # noqa: BLE001
                logger.exception("session listener failed", extra={"event": event})

"""
Viewer identity

A view is attributed either to an authenticated user or to an anonymous
browser session, never to both. The two cases are modelled as separate
types so a caller cannot build an identity with both or neither populated.
"""

from dataclasses import dataclass
from typing import Union

from engagement.exceptions import InvalidViewerIdentityError

SESSION_ID_MAX_LENGTH = 255


@dataclass(frozen=True)
class UserViewer:
    """An authenticated viewer."""

    id: int
    kind = "user"

    def __post_init__(self):
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id <= 0:
            raise InvalidViewerIdentityError("User id must be a positive integer", field="user_id")

    @property
    def key(self) -> str:
        return f"user:{self.id}"


@dataclass(frozen=True)
class SessionViewer:
    """An anonymous viewer identified by a client-persisted session token."""

    id: str
    kind = "session"

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidViewerIdentityError("Session id must be a non-empty string", field="session_id")
        if len(self.id) > SESSION_ID_MAX_LENGTH:
            raise InvalidViewerIdentityError(
                f"Session id must be at most {SESSION_ID_MAX_LENGTH} characters", field="session_id"
            )
        if self.id != self.id.strip() or any(ch.isspace() for ch in self.id):
            raise InvalidViewerIdentityError("Session id must not contain whitespace", field="session_id")

    @property
    def key(self) -> str:
        return f"session:{self.id}"


ViewerIdentity = Union[UserViewer, SessionViewer]


def resolve_viewer(user_id: int | None, session_id: str | None) -> ViewerIdentity | None:
    """
    Pick the viewer identity for a request.

    The authenticated user wins over the session token. Returns None when
    neither is available.
    """
    if user_id is not None:
        return UserViewer(user_id)
    if session_id:
        return SessionViewer(session_id)
    return None

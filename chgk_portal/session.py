"""
Session / role gate.

Three roles: GUEST (anonymous), VIEWER (signed-in identity) and ADMIN
(holder of the shared host password, not tied to an identity).

    GUEST  --sign_in-->      VIEWER
    GUEST  --admin_login-->  ADMIN
    any    --logout-->       GUEST

``restore`` rebuilds a session from the identity provider alone, so an
ADMIN grant is lost on restore while a VIEWER session comes back.
"""

import enum
import secrets
from dataclasses import dataclass
from typing import Optional


class Role(str, enum.Enum):
    GUEST = "GUEST"
    VIEWER = "VIEWER"
    ADMIN = "ADMIN"


class SessionError(Exception):
    """Raised on a transition the current role does not allow."""


def check_host_password(candidate: str, expected: str) -> bool:
    if not candidate or not expected:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


@dataclass
class SessionState:
    role: Role = Role.GUEST
    user_id: Optional[int] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_viewer(self) -> bool:
        return self.role == Role.VIEWER and self.user_id is not None

    def sign_in(self, user_id: int, email: Optional[str] = None) -> "SessionState":
        if self.role != Role.GUEST:
            raise SessionError(f"Cannot sign in from role {self.role.value}")
        self.role = Role.VIEWER
        self.user_id = user_id
        self.email = email
        return self

    def admin_login(self, candidate: str, expected: str) -> bool:
        """Grant ADMIN when the shared password matches. Returns whether it did."""
        if self.role != Role.GUEST:
            raise SessionError(f"Cannot enter host mode from role {self.role.value}")
        if not check_host_password(candidate, expected):
            return False
        self.role = Role.ADMIN
        self.user_id = None
        self.email = None
        return True

    def logout(self) -> "SessionState":
        self.role = Role.GUEST
        self.user_id = None
        self.email = None
        return self

    @classmethod
    def restore(cls, user_id: Optional[int], email: Optional[str] = None) -> "SessionState":
        """Rebuild from the identity provider's session. ADMIN is never restored."""
        state = cls()
        if user_id:
            state.sign_in(user_id, email)
        return state

# app/core/actor.py
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from app.core.exceptions import MissingActorError, PermissionDeniedError


ROLE_ADMIN = "admin"
ROLE_OPERATOR = "operator"
ROLE_VIEWER = "viewer"

ROLES = (ROLE_ADMIN, ROLE_OPERATOR, ROLE_VIEWER)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, used for audit attribution and role-gated edits."""

    user_id: int
    username: str
    role: str = ROLE_VIEWER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def can_write(self) -> bool:
        return self.role in (ROLE_ADMIN, ROLE_OPERATOR)


# ------------------------------
# Hook your real auth here: the session layer lives outside this service
# and forwards the resolved identity in headers.
# ------------------------------
def get_actor(
        x_actor_id: Optional[int] = Header(None),
        x_actor_name: Optional[str] = Header(None),
        x_actor_role: Optional[str] = Header(None),
) -> Actor:
    if x_actor_id is None or not (x_actor_name or "").strip():
        raise MissingActorError("Caller identity is required (X-Actor-Id, X-Actor-Name)")

    role = (x_actor_role or ROLE_VIEWER).strip().lower()
    if role not in ROLES:
        raise PermissionDeniedError(f"Unknown role: {role}")

    return Actor(user_id=x_actor_id, username=x_actor_name.strip(), role=role)


def require_writer(actor: Actor) -> Actor:
    if not actor.can_write:
        raise PermissionDeniedError("Admin or operator access required")
    return actor


def require_admin(actor: Actor) -> Actor:
    if not actor.is_admin:
        raise PermissionDeniedError("Admin access required")
    return actor

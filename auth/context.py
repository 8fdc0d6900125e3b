"""Authorization context.

Built once per request from the bearer token and passed to every service.
Role checks go through this object only.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from errors import PermissionDeniedError

ADMIN_ROLE = "admin"
USER_ROLE = "user"


@dataclass(frozen=True)
class AuthContext:
    """The caller's identity and role.

    Attributes:
        profile_id: Caller's profile id.
        role: ``user`` or ``admin``.
        email: Caller's email.
        full_name: Caller's display name.
    """
    profile_id: int
    role: str = USER_ROLE
    email: Optional[str] = None
    full_name: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "AuthContext":
        return cls(
            profile_id=profile["id"],
            role=profile.get("role") or USER_ROLE,
            email=profile.get("email"),
            full_name=profile.get("full_name"),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def scope_user_id(self) -> Optional[int]:
        """User filter for record queries; None lets admins see everyone."""
        return None if self.is_admin else self.profile_id

    def require_admin(self) -> None:
        """Raise ``PermissionDeniedError`` unless the caller is an admin."""
        if not self.is_admin:
            raise PermissionDeniedError("Admin access required")

    def can_modify(self, owner_id: Optional[int]) -> bool:
        """Admins modify anything; users only what they created."""
        return self.is_admin or (owner_id is not None and owner_id == self.profile_id)

    def require_owner(self, owner_id: Optional[int]) -> None:
        if not self.can_modify(owner_id):
            raise PermissionDeniedError("You can only modify your own records")

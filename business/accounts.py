"""Account service: sign-up, login, profile and password changes."""
from typing import Any, Dict, Optional

from loguru import logger

from auth.context import AuthContext
from auth.passwords import hash_password, verify_password
from auth.tokens import TokenStore
from auth.validation import validate_password, validate_signup, validate_username
from errors import AuthenticationError, NotFoundError, ValidationError


class AccountService:
    """Account operations backed by the profiles table and a token store."""

    def __init__(self, db, tokens: Optional[TokenStore] = None) -> None:
        self.db = db
        self.tokens = tokens or TokenStore()

    def signup(self, full_name: str, email: str, password: str,
               confirm_password: str, username: Optional[str] = None
               ) -> Dict[str, Any]:
        """Create a ``user`` profile.

        Raises:
            ValidationError: Form rule violated.
            ConflictError: Email or username already registered.
        """
        validate_signup(full_name, email, password, confirm_password, username)
        profile = self.db.create_profile(
            email=email, password_hash=hash_password(password),
            full_name=full_name.strip(), role="user", username=username
        )
        logger.info(f"New profile {profile['id']} signed up ({profile['email']})")
        return profile

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Check credentials and issue a bearer token.

        Returns:
            ``{"token": str, "profile": dict}``.

        Raises:
            AuthenticationError: Unknown email or wrong password.
        """
        profile = self.db.find_profile_by_email(email or "", include_secret=True)
        if profile is None or not verify_password(password or "", profile.pop("password_hash")):
            logger.warning(f"Failed login for {email}")
            raise AuthenticationError("Invalid email or password")
        return {"token": self.tokens.issue(profile["id"]), "profile": profile}

    def logout(self, token: str) -> None:
        self.tokens.revoke(token)

    def authenticate(self, token: Optional[str]) -> AuthContext:
        """Resolve a bearer token to an ``AuthContext``.

        Raises:
            AuthenticationError: Missing, unknown or expired token.
        """
        profile_id = self.tokens.resolve(token) if token else None
        if profile_id is None:
            raise AuthenticationError("Unauthorized, please log in")
        profile = self.db.get_profile(profile_id)
        if profile is None:
            self.tokens.revoke(token)
            raise AuthenticationError("Unauthorized, please log in")
        return AuthContext.from_profile(profile)

    def update_profile(self, auth: AuthContext,
                       fields: Dict[str, Any]) -> Dict[str, Any]:
        """Update the caller's own profile.

        Raises:
            ValidationError: Username too short.
            ConflictError: Username already taken.
        """
        if fields.get("username"):
            fields = {**fields, "username": validate_username(fields["username"])}
        return self.db.update_profile(auth.profile_id, fields)

    def change_password(self, auth: AuthContext, current_password: str,
                        new_password: str, confirm_password: str) -> None:
        """Change the caller's password after re-checking the current one.

        Raises:
            ValidationError: Rule violated or current password incorrect.
        """
        if not current_password:
            raise ValidationError("Current password is required")
        validate_password(new_password, confirm_password, label="New password")
        stored = self.db.get_password_hash(auth.profile_id)
        if stored is None and self.db.get_profile(auth.profile_id) is None:
            raise NotFoundError("Profile not found")
        if not verify_password(current_password, stored or ""):
            raise ValidationError("Current password is incorrect")
        self.db.set_password_hash(auth.profile_id, hash_password(new_password))
        logger.info(f"Password changed for profile {auth.profile_id}")

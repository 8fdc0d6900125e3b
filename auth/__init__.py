"""Authentication helpers: authorization context, tokens, passwords, validation."""
from .context import AuthContext
from .tokens import TokenStore

__all__ = ["AuthContext", "TokenStore"]

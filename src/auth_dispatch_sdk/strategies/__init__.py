"""Authentication strategies."""

from .base import AuthStrategy, TokenSession
from .jwt import BearerJwtStrategy
from .oauth import PasswordOAuthStrategy

__all__ = ["AuthStrategy", "TokenSession", "BearerJwtStrategy", "PasswordOAuthStrategy"]

"""Identity provider backend API client."""

from .client import IdentityClient, IdentityProviderError, IdentityUser

__all__ = ["IdentityClient", "IdentityProviderError", "IdentityUser"]

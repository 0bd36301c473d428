"""HTTP security middleware: CORS origin allow-listing and CSRF tokens."""

from .cors import CORSProtectionMiddleware
from .csrf import CSRFMiddleware, create_timestamped_token, validate_timestamped_token

__all__ = [
    "CORSProtectionMiddleware",
    "CSRFMiddleware",
    "create_timestamped_token",
    "validate_timestamped_token",
]

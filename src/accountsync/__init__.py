"""
accountsync - user accounts kept in sync with an external identity provider.

Usage:
    from accountsync import create_app

    app = create_app()
"""

from .api.main import create_app

__all__ = ["create_app"]

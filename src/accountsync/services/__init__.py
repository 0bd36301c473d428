"""
accountsync services

- mongo: MongoService connection and generic Repository
- users: User queries
- activity_log: fire-and-forget audit sink
- identity: identity provider backend API client
- identity_events: webhook verification, routing and reconciliation
- user_service: self-service updates and the admin directory
"""

from .activity_log import ActivityLogSink
from .mongo import MongoService, Repository, get_mongo_service

__all__ = ["ActivityLogSink", "MongoService", "Repository", "get_mongo_service"]

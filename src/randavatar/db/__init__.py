"""Database module for randavatar.

Exports:
- Base: SQLAlchemy declarative base
- models: UserEntity, WorkspaceBot
- UserStore: key-value access by (team_id, user_id)
"""

from randavatar.db.models import Base, UserEntity, WorkspaceBot
from randavatar.db.store import UserStore, get_store

__all__ = ["Base", "UserEntity", "UserStore", "WorkspaceBot", "get_store"]

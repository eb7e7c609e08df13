"""Database access for the collaboration service.

Usage:
    from collab.db import get_session, engine

    with get_session() as session:
        workspace = session.get(Workspace, workspace_id)
"""

from collab.db.engine import create_db_engine, engine, get_session, init_db

__all__ = [
    "create_db_engine",
    "engine",
    "get_session",
    "init_db",
]

from .connection import init_database, close_database, create_tables, drop_tables, get_session, get_db
from .unified_models import Base, User, SearchQuery, Content, MonitoredPage, MonitoredPost

__all__ = [
    "init_database",
    "close_database",
    "create_tables",
    "drop_tables",
    "get_session",
    "get_db",
    "Base",
    "User",
    "SearchQuery",
    "Content",
    "MonitoredPage",
    "MonitoredPost",
]

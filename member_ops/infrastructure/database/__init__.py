from member_ops.infrastructure.database.data_store import (
    DEFAULT_STATS_QUERY,
    DataStore,
    SQLAlchemyDataStore,
)

__all__ = ["DEFAULT_STATS_QUERY", "DataStore", "SQLAlchemyDataStore"]

from nlquery.history.recorder import HistoryRecorder
from nlquery.history.store import PostgresHistoryStore, QueryHistoryStore

__all__ = ["HistoryRecorder", "PostgresHistoryStore", "QueryHistoryStore"]

from .client_cache import ClientCache
from .history_service import HistoryApiClient, HistoryService

__all__ = ["ClientCache", "HistoryApiClient", "HistoryService"]

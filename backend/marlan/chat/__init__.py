"""Chat pipeline: content condensing, prompt assembly, URL scraping and the turn service"""
from .service import ChatResult, ChatService
from .url_scraping import UrlScrapingMiddleware

__all__ = ["ChatResult", "ChatService", "UrlScrapingMiddleware"]

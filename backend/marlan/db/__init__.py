"""Database module - sessions, messages, profiles and knowledge base"""
from .database import init_db, ensure_session_exists, PromptContextStore
from .kv_store import SqliteKeyValueStore
from .models import ChatSession, ChatMessage, UserProfile

__all__ = [
    'init_db',
    'ensure_session_exists',
    'PromptContextStore',
    'SqliteKeyValueStore',
    'ChatSession',
    'ChatMessage',
    'UserProfile',
]

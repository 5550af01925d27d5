"""Database connection and operations"""
import json
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

import aiosqlite

from ..config import config
from ..utils.structured_logger import get_logger
from ..utils.text import query_terms
from .models import (
    ChatMessage,
    ChatSession,
    ChatSessionCreate,
    ChatSessionUpdate,
    DashboardStats,
    KnowledgeDocument,
    UserProfile,
    UserProfileUpdate,
)

logger = get_logger(__name__)

DEFAULT_TITLE = "New Conversation"

def _db_path() -> Path:
    """Resolve the database path at call time so it can be swapped in tests"""
    return Path(config.DATABASE_PATH)


def _now() -> str:
    return datetime.now().isoformat()


async def init_db():
    """Initialise the database (create tables)"""
    db_path = _db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(db_path) as db:
        await db.executescript("""
            CREATE TABLE IF NOT EXISTS chat_sessions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL DEFAULT 'New Conversation',
                agent_id TEXT NOT NULL DEFAULT 'default',
                deep_search_enabled INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS chat_messages (
                id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL REFERENCES chat_sessions(id) ON DELETE CASCADE,
                user_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                tools_used TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS user_profiles (
                user_id TEXT PRIMARY KEY,
                full_name TEXT,
                company_name TEXT,
                website_url TEXT,
                location TEXT,
                company_description TEXT,
                website_summary TEXT,
                is_admin INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS user_roles (
                user_id TEXT NOT NULL,
                role TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (user_id, role)
            );

            CREATE TABLE IF NOT EXISTS documents (
                id TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                metadata TEXT NOT NULL DEFAULT '{}',
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS kv_cache (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at REAL
            );

            CREATE INDEX IF NOT EXISTS idx_sessions_user ON chat_sessions(user_id);
            CREATE INDEX IF NOT EXISTS idx_sessions_updated ON chat_sessions(updated_at DESC);
            CREATE INDEX IF NOT EXISTS idx_messages_session ON chat_messages(session_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_messages_user ON chat_messages(user_id, created_at DESC);
        """)
        await db.commit()

    logger.info("Database initialised", path=str(db_path))


def _row_to_session(row) -> ChatSession:
    return ChatSession(
        id=row['id'],
        user_id=row['user_id'],
        title=row['title'],
        agent_id=row['agent_id'],
        deep_search_enabled=bool(row['deep_search_enabled']),
        created_at=datetime.fromisoformat(row['created_at']),
        updated_at=datetime.fromisoformat(row['updated_at']),
    )


def _row_to_message(row) -> ChatMessage:
    tools_used = json.loads(row['tools_used']) if row['tools_used'] else None
    return ChatMessage(
        id=row['id'],
        session_id=row['session_id'],
        user_id=row['user_id'],
        role=row['role'],
        content=row['content'],
        tools_used=tools_used,
        created_at=datetime.fromisoformat(row['created_at']),
    )


def _row_to_profile(row) -> UserProfile:
    return UserProfile(
        user_id=row['user_id'],
        full_name=row['full_name'],
        company_name=row['company_name'],
        website_url=row['website_url'],
        location=row['location'],
        company_description=row['company_description'],
        website_summary=row['website_summary'],
        is_admin=bool(row['is_admin']),
        created_at=datetime.fromisoformat(row['created_at']),
        updated_at=datetime.fromisoformat(row['updated_at']),
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

async def create_session(user_id: str, data: ChatSessionCreate) -> ChatSession:
    """Create a new chat session"""
    session_id = data.id or str(uuid.uuid4())
    now = _now()
    title = data.title or DEFAULT_TITLE

    async with aiosqlite.connect(_db_path()) as db:
        await db.execute("""
            INSERT INTO chat_sessions (id, user_id, title, agent_id, deep_search_enabled, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (session_id, user_id, title, data.agent_id, int(data.deep_search_enabled), now, now))
        await db.commit()

    return ChatSession(
        id=session_id,
        user_id=user_id,
        title=title,
        agent_id=data.agent_id,
        deep_search_enabled=data.deep_search_enabled,
        created_at=datetime.fromisoformat(now),
        updated_at=datetime.fromisoformat(now),
    )


async def get_session(session_id: str, user_id: Optional[str] = None) -> Optional[ChatSession]:
    """Get a single session, optionally restricted to its owner"""
    async with aiosqlite.connect(_db_path()) as db:
        db.row_factory = aiosqlite.Row
        if user_id is None:
            cursor = await db.execute("SELECT * FROM chat_sessions WHERE id = ?", (session_id,))
        else:
            cursor = await db.execute(
                "SELECT * FROM chat_sessions WHERE id = ? AND user_id = ?", (session_id, user_id)
            )
        row = await cursor.fetchone()

    return _row_to_session(row) if row else None


async def list_sessions(user_id: str) -> List[ChatSession]:
    """List a user's sessions, most recently updated first"""
    async with aiosqlite.connect(_db_path()) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute("""
            SELECT * FROM chat_sessions
            WHERE user_id = ?
            ORDER BY updated_at DESC
        """, (user_id,))
        rows = await cursor.fetchall()

    return [_row_to_session(row) for row in rows]


async def update_session(session_id: str, user_id: str, update: ChatSessionUpdate) -> Optional[ChatSession]:
    """Update title, agent or deep search flag of a session"""
    updates = []
    params = []

    if update.title is not None:
        updates.append("title = ?")
        params.append(update.title)

    if update.agent_id is not None:
        updates.append("agent_id = ?")
        params.append(update.agent_id)

    if update.deep_search_enabled is not None:
        updates.append("deep_search_enabled = ?")
        params.append(int(update.deep_search_enabled))

    if not updates:
        return await get_session(session_id, user_id)

    updates.append("updated_at = ?")
    params.append(_now())
    params.extend([session_id, user_id])

    async with aiosqlite.connect(_db_path()) as db:
        await db.execute(f"""
            UPDATE chat_sessions
            SET {', '.join(updates)}
            WHERE id = ? AND user_id = ?
        """, params)
        await db.commit()

    return await get_session(session_id, user_id)


async def delete_session(session_id: str, user_id: str) -> bool:
    """Delete a session and its messages"""
    async with aiosqlite.connect(_db_path()) as db:
        cursor = await db.execute(
            "DELETE FROM chat_sessions WHERE id = ? AND user_id = ?", (session_id, user_id)
        )
        deleted = cursor.rowcount > 0
        if deleted:
            await db.execute("DELETE FROM chat_messages WHERE session_id = ?", (session_id,))
        await db.commit()
    return deleted


async def ensure_session_exists(
    session_id: str,
    user_id: str,
    title: str = DEFAULT_TITLE,
    agent_id: str = "default",
    deep_search_enabled: bool = False,
) -> Optional[ChatSession]:
    """Make sure a session row exists; create it when missing"""
    existing = await get_session(session_id)
    if existing:
        return existing if existing.user_id == user_id else None

    now = _now()
    async with aiosqlite.connect(_db_path()) as db:
        await db.execute("""
            INSERT OR IGNORE INTO chat_sessions (id, user_id, title, agent_id, deep_search_enabled, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (session_id, user_id, title, agent_id, int(deep_search_enabled), now, now))
        await db.commit()
    logger.info("Session created on first message", session=session_id)
    return await get_session(session_id, user_id)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

async def save_message(
    session_id: str,
    user_id: str,
    role: str,
    content: str,
    tools_used=None,
) -> ChatMessage:
    """Append a message to a session and bump the session's updated_at"""
    message_id = str(uuid.uuid4())
    now = _now()
    tools_json = json.dumps(tools_used) if tools_used else None

    async with aiosqlite.connect(_db_path()) as db:
        await db.execute("""
            INSERT INTO chat_messages (id, session_id, user_id, role, content, tools_used, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (message_id, session_id, user_id, role, content, tools_json, now))
        await db.execute(
            "UPDATE chat_sessions SET updated_at = ? WHERE id = ?", (now, session_id)
        )
        await db.commit()

    return ChatMessage(
        id=message_id,
        session_id=session_id,
        user_id=user_id,
        role=role,
        content=content,
        tools_used=tools_used or None,
        created_at=datetime.fromisoformat(now),
    )


async def list_messages(session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
    """Messages of a session in creation order"""
    async with aiosqlite.connect(_db_path()) as db:
        db.row_factory = aiosqlite.Row
        if limit is None:
            cursor = await db.execute("""
                SELECT * FROM chat_messages
                WHERE session_id = ?
                ORDER BY created_at ASC, rowid ASC
            """, (session_id,))
            rows = await cursor.fetchall()
        else:
            # newest `limit` messages, returned oldest first
            cursor = await db.execute("""
                SELECT * FROM chat_messages
                WHERE session_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
            """, (session_id, limit))
            rows = list(reversed(await cursor.fetchall()))

    return [_row_to_message(row) for row in rows]


async def count_messages(session_id: str) -> int:
    """Number of messages in a session (0 when the session does not exist)"""
    async with aiosqlite.connect(_db_path()) as db:
        cursor = await db.execute(
            "SELECT COUNT(*) FROM chat_messages WHERE session_id = ?", (session_id,)
        )
        row = await cursor.fetchone()
    return row[0] if row else 0


async def get_recent_user_messages(user_id: str, limit: int = 10) -> List[ChatMessage]:
    """A user's latest messages across all sessions, newest first"""
    async with aiosqlite.connect(_db_path()) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute("""
            SELECT * FROM chat_messages
            WHERE user_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
        """, (user_id, limit))
        rows = await cursor.fetchall()

    return [_row_to_message(row) for row in rows]


# ---------------------------------------------------------------------------
# Profiles and roles
# ---------------------------------------------------------------------------

async def get_user_profile(user_id: str) -> Optional[UserProfile]:
    """Fetch a user's studio profile"""
    async with aiosqlite.connect(_db_path()) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute("SELECT * FROM user_profiles WHERE user_id = ?", (user_id,))
        row = await cursor.fetchone()
    return _row_to_profile(row) if row else None


async def upsert_user_profile(user_id: str, update: UserProfileUpdate) -> UserProfile:
    """Create or update a user's profile with the provided fields"""
    fields = update.model_dump(exclude_none=True)
    now = _now()

    async with aiosqlite.connect(_db_path()) as db:
        await db.execute("""
            INSERT OR IGNORE INTO user_profiles (user_id, created_at, updated_at)
            VALUES (?, ?, ?)
        """, (user_id, now, now))
        if fields:
            assignments = ", ".join(f"{name} = ?" for name in fields)
            await db.execute(
                f"UPDATE user_profiles SET {assignments}, updated_at = ? WHERE user_id = ?",
                [*fields.values(), now, user_id],
            )
        await db.commit()

    return await get_user_profile(user_id)


async def is_admin(user_id: str) -> bool:
    """Admin check: the roles table wins, the profile flag is the fallback"""
    async with aiosqlite.connect(_db_path()) as db:
        cursor = await db.execute(
            "SELECT 1 FROM user_roles WHERE user_id = ? AND role = 'admin'", (user_id,)
        )
        if await cursor.fetchone():
            return True
        cursor = await db.execute(
            "SELECT is_admin FROM user_profiles WHERE user_id = ?", (user_id,)
        )
        row = await cursor.fetchone()
    return bool(row and row[0])


async def set_admin(user_id: str, admin: bool) -> bool:
    """Grant or revoke the admin role; returns False when the user has no profile"""
    now = _now()
    async with aiosqlite.connect(_db_path()) as db:
        cursor = await db.execute("SELECT 1 FROM user_profiles WHERE user_id = ?", (user_id,))
        if not await cursor.fetchone():
            return False

        if admin:
            await db.execute(
                "INSERT OR IGNORE INTO user_roles (user_id, role, created_at) VALUES (?, 'admin', ?)",
                (user_id, now),
            )
        else:
            await db.execute("DELETE FROM user_roles WHERE user_id = ? AND role = 'admin'", (user_id,))
        await db.execute(
            "UPDATE user_profiles SET is_admin = ?, updated_at = ? WHERE user_id = ?",
            (int(admin), now, user_id),
        )
        await db.commit()
    return True


async def list_users() -> List[dict]:
    """All profiles with their session counts, for the admin user table"""
    async with aiosqlite.connect(_db_path()) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute("""
            SELECT p.*,
                   (SELECT COUNT(*) FROM chat_sessions s WHERE s.user_id = p.user_id) AS session_count,
                   EXISTS (SELECT 1 FROM user_roles r WHERE r.user_id = p.user_id AND r.role = 'admin') AS has_admin_role
            FROM user_profiles p
            ORDER BY p.created_at DESC
        """)
        rows = await cursor.fetchall()

    users = []
    for row in rows:
        profile = _row_to_profile(row)
        users.append({
            **profile.model_dump(mode="json"),
            "is_admin": bool(row['has_admin_role']) or profile.is_admin,
            "session_count": row['session_count'],
        })
    return users


async def delete_user(user_id: str) -> bool:
    """Remove a user's profile, roles, sessions and messages"""
    async with aiosqlite.connect(_db_path()) as db:
        cursor = await db.execute("DELETE FROM user_profiles WHERE user_id = ?", (user_id,))
        deleted = cursor.rowcount > 0
        await db.execute("DELETE FROM user_roles WHERE user_id = ?", (user_id,))
        await db.execute("DELETE FROM chat_messages WHERE user_id = ?", (user_id,))
        await db.execute("DELETE FROM chat_sessions WHERE user_id = ?", (user_id,))
        await db.commit()
    return deleted


async def get_dashboard_stats() -> DashboardStats:
    """Aggregate counters for the admin dashboard"""
    since = (datetime.now() - timedelta(hours=24)).isoformat()
    async with aiosqlite.connect(_db_path()) as db:
        async def scalar(query: str, params: tuple = ()) -> int:
            cursor = await db.execute(query, params)
            row = await cursor.fetchone()
            return row[0] if row else 0

        return DashboardStats(
            user_count=await scalar("SELECT COUNT(*) FROM user_profiles"),
            admin_count=await scalar("""
                SELECT COUNT(DISTINCT user_id) FROM (
                    SELECT user_id FROM user_roles WHERE role = 'admin'
                    UNION SELECT user_id FROM user_profiles WHERE is_admin = 1
                )
            """),
            session_count=await scalar("SELECT COUNT(*) FROM chat_sessions"),
            message_count=await scalar("SELECT COUNT(*) FROM chat_messages"),
            sessions_last_24h=await scalar("SELECT COUNT(*) FROM chat_sessions WHERE created_at >= ?", (since,)),
            messages_last_24h=await scalar("SELECT COUNT(*) FROM chat_messages WHERE created_at >= ?", (since,)),
        )


# ---------------------------------------------------------------------------
# Knowledge base documents
# ---------------------------------------------------------------------------

async def add_document(content: str, metadata: Optional[dict] = None) -> KnowledgeDocument:
    """Store a knowledge base document"""
    doc_id = str(uuid.uuid4())
    async with aiosqlite.connect(_db_path()) as db:
        await db.execute(
            "INSERT INTO documents (id, content, metadata, created_at) VALUES (?, ?, ?, ?)",
            (doc_id, content, json.dumps(metadata or {}), _now()),
        )
        await db.commit()
    return KnowledgeDocument(id=doc_id, content=content, metadata=metadata or {})


async def search_documents(query: str, limit: int = 5, similarity_threshold: float = 0.3) -> List[KnowledgeDocument]:
    """
    Find documents sharing terms with the query

    Similarity is the fraction of distinct query terms that occur in the
    document. Documents below the threshold are dropped.

    Args:
        query: Free text query
        limit: Maximum number of documents
        similarity_threshold: Minimum similarity (0-1)

    Returns:
        Documents sorted by similarity, best first
    """
    terms = query_terms(query)
    if not terms:
        return []

    where = " OR ".join("LOWER(content) LIKE ?" for _ in terms)
    async with aiosqlite.connect(_db_path()) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(
            f"SELECT * FROM documents WHERE {where}", [f"%{t}%" for t in terms]
        )
        rows = await cursor.fetchall()

    scored = []
    for row in rows:
        text = row['content'].lower()
        hits = sum(1 for t in terms if t in text)
        similarity = hits / len(terms)
        if similarity >= similarity_threshold:
            scored.append(KnowledgeDocument(
                id=row['id'],
                content=row['content'],
                metadata=json.loads(row['metadata'] or "{}"),
                similarity=similarity,
            ))

    scored.sort(key=lambda d: d.similarity, reverse=True)
    return scored[:limit]


class PromptContextStore:
    """Profile and history reads used to personalise system prompts"""

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return await get_user_profile(user_id)

    async def get_recent_user_messages(self, user_id: str, limit: int = 10) -> List[ChatMessage]:
        return await get_recent_user_messages(user_id, limit)

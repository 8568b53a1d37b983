#!/usr/bin/env python3
"""
Session management for the bakery agents.

Conversation history is stored in Redis, or in process memory when Redis is
not reachable. Each session keeps only its most recent messages and expires
after SESSION_TTL_SECONDS without activity; the in-memory store also evicts
its least recently used sessions beyond MAX_MEMORY_SESSIONS.
"""

import json
import redis
from collections import OrderedDict
from typing import Dict, List, Any, Optional
from datetime import datetime, timedelta
from .config import Config
from ..utils.logger import get_logger

logger = get_logger()


class SessionManager:
    """Manages agent sessions and conversation history."""

    def __init__(self, use_redis: bool = True):
        """Connect to Redis, falling back to an in-memory dict."""
        self.use_redis = use_redis
        self.memory_sessions = OrderedDict()
        self.redis_client = None

        if not use_redis:
            return

        try:
            self.redis_client = redis.Redis(
                host=Config.REDIS_HOST,
                port=Config.REDIS_PORT,
                db=Config.REDIS_DB,
                decode_responses=True,
                socket_connect_timeout=1,
            )
            self.redis_client.ping()
            logger.info("Using Redis for session storage")
        except redis.RedisError as e:
            logger.warning(f"Redis not available ({e}), using in-memory session storage")
            self.use_redis = False
            self.redis_client = None

    def _get_session_key(self, session_id: str) -> str:
        return f"session:{session_id}"

    def _save(self, session_id: str, session_data: Dict[str, Any]):
        session_data["messages"] = session_data["messages"][-Config.MAX_CONVERSATION_TURNS:]
        if self.use_redis:
            self.redis_client.setex(
                self._get_session_key(session_id),
                Config.SESSION_TTL_SECONDS,
                json.dumps(session_data),
            )
            return
        self.memory_sessions[session_id] = session_data
        self.memory_sessions.move_to_end(session_id)
        while len(self.memory_sessions) > Config.MAX_MEMORY_SESSIONS:
            evicted, _ = self.memory_sessions.popitem(last=False)
            logger.debug(f"Evicted session {evicted} from memory store")

    def _is_expired(self, session_data: Dict[str, Any]) -> bool:
        last_updated = datetime.fromisoformat(session_data["last_updated"])
        return datetime.now() - last_updated > timedelta(seconds=Config.SESSION_TTL_SECONDS)

    def create_session(self, session_id: str, role: Optional[str] = None) -> bool:
        """
        Create a new session.

        Args:
            session_id: Unique session identifier
            role: Agent role the session was opened for

        Returns:
            True if session was created, False if it already exists
        """
        if self.get_session(session_id) is not None:
            return False

        now = datetime.now().isoformat()
        self._save(session_id, {
            "role": role,
            "messages": [],
            "created_at": now,
            "last_updated": now,
        })
        return True

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        if self.use_redis:
            session_data = self.redis_client.get(self._get_session_key(session_id))
            return json.loads(session_data) if session_data else None
        session_data = self.memory_sessions.get(session_id)
        if session_data is not None and self._is_expired(session_data):
            del self.memory_sessions[session_id]
            return None
        return session_data

    def add_message(self, session_id: str, role: str, text: str) -> bool:
        """
        Append a message to the session history, creating the session on first use.

        Args:
            session_id: Unique session identifier
            role: ``user`` or ``assistant``
            text: Message text
        """
        session_data = self.get_session(session_id)
        if not session_data:
            self.create_session(session_id)
            session_data = self.get_session(session_id)
            if not session_data:
                return False

        session_data["messages"].append({
            "role": role,
            "text": text,
            "timestamp": datetime.now().isoformat(),
        })
        session_data["last_updated"] = datetime.now().isoformat()
        self._save(session_id, session_data)
        return True

    def get_recent_messages(self, session_id: str, max_messages: int = 5) -> List[Dict[str, str]]:
        session_data = self.get_session(session_id)
        if not session_data:
            return []
        messages = session_data.get("messages", [])
        return messages[-max_messages:] if messages else []

    def get_conversation_context(self, session_id: str) -> List[Dict[str, str]]:
        """
        Recent history as chat-completion messages.

        Returns:
            List of ``{"role": ..., "content": ...}`` dictionaries, oldest first
        """
        messages = self.get_recent_messages(session_id, Config.MAX_CONVERSATION_TURNS)
        logger.debug(f"Retrieved {len(messages)} recent messages for session {session_id}")
        return [{"role": m["role"], "content": m["text"]} for m in messages]

    def clear_session(self, session_id: str) -> bool:
        if self.use_redis:
            return bool(self.redis_client.delete(self._get_session_key(session_id)))
        if session_id in self.memory_sessions:
            del self.memory_sessions[session_id]
            return True
        return False

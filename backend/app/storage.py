import json
import logging
import os
import time
from typing import Dict, List, Optional

from pydantic import ValidationError

from errors import SessionNotFound, TransportError
from models import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """File-based keyed store for recorded sessions.

    All sessions live in a single JSON document mapping session name to the
    session in recorder wire format. Writes replace the whole document, so
    concurrent saves to the same name resolve as last write wins.
    """

    def __init__(self, data_dir: str = "data", filename: str = "sessions.json"):
        self.data_dir = data_dir
        self.file_path = os.path.join(data_dir, filename)
        self._last_created_at = 0
        self._ensure_directories()

    def _ensure_directories(self):
        """Ensure the data directory exists"""
        os.makedirs(self.data_dir, exist_ok=True)

    def _read(self) -> Dict[str, dict]:
        if not os.path.exists(self.file_path):
            return {}
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Session file {self.file_path} is unreadable, treating as empty: {e}")
            return {}
        except OSError as e:
            raise TransportError(f"Could not read {self.file_path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, dict]):
        tmp_path = f"{self.file_path}.tmp"
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            raise TransportError(f"Could not write {self.file_path}: {e}") from e

    def _next_created_at(self) -> int:
        now = int(time.time() * 1000)
        # Never go backwards within this process, even if the wall clock does
        self._last_created_at = max(now, self._last_created_at)
        return self._last_created_at

    # Session operations

    def save(self, session: Session) -> Session:
        """Save a session, overwriting any session with the same name"""
        session.created_at = self._next_created_at()
        data = self._read()
        data[session.name] = session.to_wire()
        self._write(data)
        logger.info(f"Saved session \"{session.name}\" with {len(session.events)} events")
        return session

    def load(self, name: str) -> Optional[Session]:
        """Get session by name"""
        raw = self._read().get(name)
        if raw is None:
            return None
        try:
            return Session.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Stored session \"{name}\" is invalid: {e}")
            return None

    def require(self, name: str) -> Session:
        """Get session by name, raising SessionNotFound if it is missing"""
        session = self.load(name)
        if session is None:
            raise SessionNotFound(name)
        return session

    def load_all(self) -> Dict[str, Session]:
        """Get all valid sessions keyed by name"""
        sessions = {}
        for name in self._read():
            session = self.load(name)
            if session:
                sessions[name] = session
        return sessions

    def list(self) -> List[str]:
        """Get all session names"""
        return list(self._read().keys())

    def delete(self, name: str) -> bool:
        """Delete a session"""
        data = self._read()
        if name not in data:
            return False
        del data[name]
        self._write(data)
        logger.info(f"Deleted session \"{name}\"")
        return True


# Singleton
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get the session store instance"""
    global _session_store
    if _session_store is None:
        from config import get_settings
        settings = get_settings()
        _session_store = SessionStore(settings.data_dir, settings.sessions_file)
    return _session_store

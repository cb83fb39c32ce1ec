# sharptools/previews.py
"""
Revocable preview handles.

A handle is the server-side counterpart of a browser object URL: a token that
resolves to the image bytes until it is revoked.
"""
import logging
import threading
import uuid
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class PreviewHandle:
    def __init__(self, store: "PreviewStore", token: str):
        self._store = store
        self.token = token
        self.released = False

    def release(self) -> None:
        if self.released:
            raise RuntimeError(f"Preview {self.token} already released")
        self.released = True
        self._store.revoke(self.token)

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<PreviewHandle {self.token} {state}>"


class PreviewStore:
    def __init__(self):
        self._items: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.Lock()
        self.created_count = 0
        self.revoked_count = 0

    def create(self, data: bytes, content_type: str) -> PreviewHandle:
        token = uuid.uuid4().hex
        with self._lock:
            self._items[token] = (data, content_type)
            self.created_count += 1
        return PreviewHandle(self, token)

    def get(self, token: str) -> Optional[Tuple[bytes, str]]:
        with self._lock:
            return self._items.get(token)

    def revoke(self, token: str) -> None:
        with self._lock:
            if self._items.pop(token, None) is None:
                logger.warning("Revoking unknown preview %s", token)
                return
            self.revoked_count += 1

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._items)

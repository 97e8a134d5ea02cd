"""Thread-safe cache of compatibility scores."""

import hashlib
import json
import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from ..scoring.scorer import CompatibilityScore

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, int, str]


def content_fingerprint(*records: Optional[Any]) -> str:
    """Stable digest of the to_dict() form of profiles and preferences."""
    payload = [r.to_dict() if r is not None else None for r in records]
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha1(encoded).hexdigest()


class ScoreCache:
    """
    LRU cache keyed by (user_id, candidate_id, weight_version, fingerprint).

    The fingerprint covers the content of both profiles and the user's
    preferences, so an edited profile never serves a stale score.

    Entries for a user must be invalidated whenever that user's weights or
    preferences change; the service wires invalidate_user to weight
    store commits.
    """

    def __init__(self, max_size: int = 10000):
        self.max_size = max_size
        self._entries: "OrderedDict[CacheKey, CompatibilityScore]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, user_id: str, candidate_id: str, version: int,
            fingerprint: str = "") -> Optional[CompatibilityScore]:
        key = (user_id, candidate_id, version, fingerprint)
        with self._lock:
            score = self._entries.get(key)
            if score is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return score

    def put(self, score: CompatibilityScore, fingerprint: str = "") -> None:
        key = (score.user_id, score.candidate_id, score.weight_version, fingerprint)
        with self._lock:
            self._entries[key] = score
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def invalidate_user(self, user_id: str, version: Optional[int] = None) -> int:
        """Drop every entry scored from user_id's perspective."""
        with self._lock:
            stale = [key for key in self._entries if key[0] == user_id]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cached score(s) for {user_id}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"size": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

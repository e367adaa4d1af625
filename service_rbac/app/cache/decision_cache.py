"""
Decision cache contract and in-memory implementation.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from shared.logging import get_logger


def build_decision_key(user_id: str, action_type: str, resource_type: str, resource_id: str) -> str:
    """Cache key for a point decision."""
    return f"{user_id}:{action_type}:{resource_type}:{resource_id}"


class DecisionCache(ABC):
    """Memoizes allow/deny outcomes. Reasons are never cached."""
    
    async def start(self) -> None:
        """Acquire resources; no-op by default."""
    
    async def stop(self) -> None:
        """Release resources; no-op by default."""
    
    @abstractmethod
    async def get(self, key: str) -> Optional[bool]:
        """Return the cached outcome or None on a miss."""
    
    @abstractmethod
    async def set(self, key: str, allowed: bool) -> None:
        """Store an outcome."""
    
    @abstractmethod
    async def clear(self) -> None:
        """Drop every cached outcome."""
    
    async def get_cache_stats(self) -> Dict[str, Any]:
        """Backend statistics; empty by default."""
        return {}


class InMemoryDecisionCache(DecisionCache):
    """Process-local cache; the lock makes it safe to share across threads."""
    
    def __init__(self):
        self.logger = get_logger("rbac.cache.memory")
        self._entries: Dict[str, bool] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
    
    async def get(self, key: str) -> Optional[bool]:
        with self._lock:
            allowed = self._entries.get(key)
            if allowed is None:
                self.misses += 1
            else:
                self.hits += 1
            return allowed
    
    async def set(self, key: str, allowed: bool) -> None:
        with self._lock:
            self._entries[key] = allowed
    
    async def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self.logger.debug("Decision cache cleared", count=count)
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
    
    async def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total = self.hits + self.misses
            return {
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": self.hits / total if total else 0.0
            }

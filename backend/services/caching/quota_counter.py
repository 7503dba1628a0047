"""
Daily quota accounting for metered external APIs.

The YouTube Data API grants a fixed number of units per day. The counter
tracks units spent today, broken down by API type, and resets itself on the
first read or write after the date changes.
"""
import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Optional

from core.config import QUOTA_WARNING_THRESHOLD, YOUTUBE_QUOTA_LIMIT
from core.database import Database

logger = logging.getLogger(__name__)


@dataclass
class QuotaState:
    """Units spent on one day"""
    day: str  # ISO date
    used: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({"day": self.day, "used": self.used, "by_type": self.by_type})

    @classmethod
    def from_json(cls, raw: str) -> "QuotaState":
        data = json.loads(raw)
        return cls(day=data["day"], used=int(data.get("used", 0)), by_type=dict(data.get("by_type", {})))


class QuotaStore(ABC):
    """Where the counter keeps its state."""

    @abstractmethod
    def load(self) -> Optional[QuotaState]:
        pass

    @abstractmethod
    def save(self, state: QuotaState) -> None:
        pass


class InMemoryQuotaStore(QuotaStore):
    """Process-local store; state is lost on restart."""

    def __init__(self):
        self._state: Optional[QuotaState] = None

    def load(self) -> Optional[QuotaState]:
        return self._state

    def save(self, state: QuotaState) -> None:
        self._state = state


class SqliteQuotaStore(QuotaStore):
    """Persists the counter in the application database."""

    NAMESPACE = "quota"

    def __init__(self, database: Database, key: str = "youtube"):
        self.database = database
        self.key = key

    def load(self) -> Optional[QuotaState]:
        raw = self.database.get_value(self.NAMESPACE, self.key)
        if raw is None:
            return None
        try:
            return QuotaState.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable quota state: {e}")
            return None

    def save(self, state: QuotaState) -> None:
        self.database.set_value(self.NAMESPACE, self.key, state.to_json())


class QuotaCounter:
    """Units spent today against a daily limit."""

    def __init__(
        self,
        quota_limit: int = YOUTUBE_QUOTA_LIMIT,
        warning_threshold: float = QUOTA_WARNING_THRESHOLD,
        store: Optional[QuotaStore] = None,
        today: Callable[[], date] = date.today,
    ):
        self.quota_limit = quota_limit
        self.warning_threshold = warning_threshold
        self.store = store or InMemoryQuotaStore()
        self.today = today
        self._lock = threading.Lock()

    def _current(self) -> QuotaState:
        day = self.today().isoformat()
        state = self.store.load()
        if state is None or state.day != day:
            if state is not None:
                logger.info(f"Quota day changed ({state.day} -> {day}), resetting counter")
            state = QuotaState(day=day)
            self.store.save(state)
        return state

    def record(self, units: int, api_type: str = "other") -> int:
        """Add units spent on api_type; returns today's total."""
        if units < 0:
            raise ValueError("Quota units must be non-negative")
        with self._lock:
            state = self._current()
            if units:
                state.used += units
                state.by_type[api_type] = state.by_type.get(api_type, 0) + units
                self.store.save(state)
            used = state.used

        if self.quota_limit and self.is_approaching_limit(used):
            logger.warning(f"Approaching quota limit: {used}/{self.quota_limit} units used today")
        return used

    @property
    def used(self) -> int:
        with self._lock:
            return self._current().used

    def is_approaching_limit(self, used: Optional[int] = None) -> bool:
        used = self.used if used is None else used
        return used >= self.quota_limit * self.warning_threshold

    def has_exceeded_limit(self, used: Optional[int] = None) -> bool:
        used = self.used if used is None else used
        return used >= self.quota_limit

    def reset(self) -> None:
        with self._lock:
            self.store.save(QuotaState(day=self.today().isoformat()))

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            state = self._current()
        remaining = max(0, self.quota_limit - state.used)
        return {
            "day": state.day,
            "used": state.used,
            "limit": self.quota_limit,
            "remaining": remaining,
            "percent_used": round(state.used / self.quota_limit * 100, 2) if self.quota_limit else 0.0,
            "by_type": dict(state.by_type),
            "approaching_limit": self.is_approaching_limit(state.used),
            "exceeded": self.has_exceeded_limit(state.used),
        }

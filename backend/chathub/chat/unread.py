"""Unread counter: per-session, per-bucket pending message tally.

A bucket is a room name or ``"private"`` for direct messages. Counters are
never cleared implicitly (not even when a session enters the room); only
:meth:`reset` (mark-read) and :meth:`discard` (disconnect) touch them.
"""
import threading
from typing import Dict


class UnreadCounter:

    def __init__(self) -> None:
        # session_id -> {bucket -> count}
        self._counts: Dict[str, Dict[str, int]] = {}
        self._lock = threading.Lock()

    def _counters(self, session_id: str) -> Dict[str, int]:
        """Get-or-create accessor (empty mapping); caller must hold the lock."""
        return self._counts.setdefault(session_id, {})

    def increment(self, session_id: str, bucket: str) -> int:
        with self._lock:
            counters = self._counters(session_id)
            counters[bucket] = counters.get(bucket, 0) + 1
            return counters[bucket]

    def reset(self, session_id: str, bucket: str) -> None:
        with self._lock:
            self._counters(session_id)[bucket] = 0

    def get(self, session_id: str, bucket: str) -> int:
        with self._lock:
            return self._counts.get(session_id, {}).get(bucket, 0)

    def snapshot(self, session_id: str) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts.get(session_id, {}))

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._counts.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()

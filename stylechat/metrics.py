"""Metrics service for tracking assistant activity.

Singleton service counting language-model calls, their latency, throttle
waits, search provider failures and fallback replies.
"""

import threading
from collections import Counter
from typing import Dict


class MetricsService:
    """Singleton service for tracking assistant metrics.

    Thread-safe counters and latency tracking for language-model calls.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize metrics counters."""
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._reset_counters()
        self._initialized = True

    def _reset_counters(self) -> None:
        self._llm_call_count = 0
        self._total_latency_ms = 0.0
        self._min_latency_ms = float("inf")
        self._max_latency_ms = 0.0
        self._throttle_wait_count = 0
        self._total_throttle_wait_ms = 0.0
        self._search_failures = 0
        self._fallbacks: Counter = Counter()

    def record_llm_call(self, latency_ms: float) -> None:
        """Record a language-model call with its latency.

        Args:
            latency_ms: Latency in milliseconds
        """
        with self._lock:
            self._llm_call_count += 1
            self._total_latency_ms += latency_ms

            if latency_ms < self._min_latency_ms:
                self._min_latency_ms = latency_ms

            if latency_ms > self._max_latency_ms:
                self._max_latency_ms = latency_ms

    def record_throttle_wait(self, wait_ms: float) -> None:
        """Record a delay imposed by the request throttle."""
        with self._lock:
            self._throttle_wait_count += 1
            self._total_throttle_wait_ms += wait_ms

    def record_search_failure(self) -> None:
        """Record a search whose query could not be embedded."""
        with self._lock:
            self._search_failures += 1

    def record_fallback(self, kind: str) -> None:
        """Record a canned reply sent instead of a model reply.

        Args:
            kind: One of ``rate_limited``, ``quota_exhausted`` or ``other``
        """
        with self._lock:
            self._fallbacks[kind] += 1

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with metrics including:
            - llm_call_count: Total number of language-model calls
            - average_latency_ms: Average model latency in milliseconds
            - min_latency_ms / max_latency_ms: Latency extremes observed
            - throttle_wait_count / total_throttle_wait_ms: Throttle delays
            - search_failures: Searches that hit an embedding failure
            - fallbacks: Fallback replies keyed by kind
        """
        with self._lock:
            avg_latency = (
                self._total_latency_ms / self._llm_call_count
                if self._llm_call_count > 0
                else 0.0
            )

            return {
                "llm_call_count": self._llm_call_count,
                "average_latency_ms": round(avg_latency, 2),
                "min_latency_ms": round(self._min_latency_ms, 2)
                if self._min_latency_ms != float("inf")
                else 0.0,
                "max_latency_ms": round(self._max_latency_ms, 2),
                "throttle_wait_count": self._throttle_wait_count,
                "total_throttle_wait_ms": round(self._total_throttle_wait_ms, 2),
                "search_failures": self._search_failures,
                "fallbacks": dict(self._fallbacks),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._reset_counters()


# Global singleton instance
metrics_service = MetricsService()

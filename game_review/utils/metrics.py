"""
Centralized Prometheus metrics definitions for the Game Review application.

This module uses the prometheus-client library to define all metrics that the
application records. Grouping them here gives one overview of the
instrumentation points: engine requests, analysis runs and classifications.
"""
from prometheus_client import Counter, Gauge, Histogram

# A common prefix for all application-specific metrics.
PREFIX = "game_review"

# --- Engine Metrics ---

ENGINE_REQUESTS_TOTAL = Counter(
    f"{PREFIX}_engine_requests_total",
    "Total number of engine evaluation requests by final state.",
    ["outcome"],  # e.g., outcome="resolved", "timed_out", "cancelled", "failed"
)

ENGINE_REQUEST_DURATION_SECONDS = Histogram(
    f"{PREFIX}_engine_request_duration_seconds",
    "Histogram of the time between sending a search and settling the request.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, float("inf"))
)

ENGINE_AVAILABLE = Gauge(
    f"{PREFIX}_engine_available",
    "1 while the engine has completed its handshake and is usable, 0 otherwise.",
)

# --- Analysis Metrics ---

ANALYSIS_RUNS_TOTAL = Counter(
    f"{PREFIX}_analysis_runs_total",
    "Total number of game analysis runs by outcome.",
    ["status"],  # e.g., status="completed", "failed", "cancelled"
)

ANALYSIS_PASS_DURATION_SECONDS = Histogram(
    f"{PREFIX}_analysis_pass_duration_seconds",
    "Histogram of the time taken by each stage of a game analysis.",
    ["stage"],  # e.g., stage="evaluation_pass", "classification_pass"
    buckets=(1, 5, 10, 30, 60, 120, 300, 600, float("inf"))
)

MOVES_CLASSIFIED_TOTAL = Counter(
    f"{PREFIX}_moves_classified_total",
    "Total number of moves classified, by label.",
    ["classification"],
)

SECONDARY_LOOKUP_FAILURES_TOTAL = Counter(
    f"{PREFIX}_secondary_lookup_failures_total",
    "Total number of second-best-line lookups that failed and were skipped.",
)

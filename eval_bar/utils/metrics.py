"""
Centralized Prometheus metrics definitions for the evaluation bar.

This module uses the prometheus-client library to define the metrics exposed
for monitoring the shared engine process and the sessions that use it.
"""
from prometheus_client import Counter, Gauge

# A common prefix for all application-specific metrics.
PREFIX = "eval_bar"

# --- Engine Lifecycle Metrics ---

ENGINE_STARTS_TOTAL = Counter(
    f"{PREFIX}_engine_starts_total",
    "Total number of engine processes successfully spawned.",
    ["candidate"],
)

ENGINE_CANDIDATE_FAILURES_TOTAL = Counter(
    f"{PREFIX}_engine_candidate_failures_total",
    "Total number of engine candidates abandoned.",
    ["reason"],  # reason="construction", "init_timeout", "runtime_error"
)

ENGINE_EXHAUSTED_TOTAL = Counter(
    f"{PREFIX}_engine_exhausted_total",
    "Total number of demand cycles in which every engine candidate failed.",
)

ENGINE_READY = Gauge(
    f"{PREFIX}_engine_ready",
    "1 while the shared engine process has acknowledged the handshake, else 0.",
)

# --- Session Metrics ---

ANALYSIS_REQUESTS_TOTAL = Counter(
    f"{PREFIX}_analysis_requests_total",
    "Total number of positions submitted to the engine.",
)

SAFETY_TIMEOUTS_TOTAL = Counter(
    f"{PREFIX}_safety_timeouts_total",
    "Total number of searches whose thinking state was cleared by the safety timer.",
)

ACTIVE_SESSIONS = Gauge(
    f"{PREFIX}_active_sessions",
    "Current number of mounted evaluation sessions.",
)

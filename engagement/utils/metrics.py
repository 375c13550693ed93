"""
Prometheus Metrics Module

Engagement metrics using the prometheus_client library.
Metrics are exposed at the /metrics endpoint for Prometheus scraping.
"""

from prometheus_client import Counter, Info

APP_INFO = Info("engagement_app", "Engagement service information")


def set_app_info(version: str, environment: str) -> None:
    """Set application info labels."""
    APP_INFO.info({"version": version, "environment": environment})


# =============================================================================
# Engagement Metrics
# =============================================================================

VIEWS_RECORDED_TOTAL = Counter(
    "engagement_views_recorded_total",
    "View requests processed by the view recorder",
    ["counted"],  # "true", "false"
)

LIKE_TOGGLES_TOTAL = Counter(
    "engagement_like_toggles_total",
    "Like toggles processed by the like toggler",
    ["action"],  # like, unlike, noop
)

STORAGE_RETRIES_TOTAL = Counter(
    "engagement_storage_retries_total",
    "Transactions retried after a transient storage error",
    ["operation"],
)

COUNTER_REPAIRS_TOTAL = Counter(
    "engagement_counter_repairs_total",
    "Content counters corrected by the reconciliation job",
    ["counter"],  # view_count, like_count
)

# =============================================================================
# Cache Metrics
# =============================================================================

CACHE_HITS_TOTAL = Counter(
    "engagement_cache_hits_total",
    "Total spotlight cache hits",
    ["cache_type"],
)

CACHE_MISSES_TOTAL = Counter(
    "engagement_cache_misses_total",
    "Total spotlight cache misses",
    ["cache_type"],
)


def record_cache_hit(cache_type: str = "memory") -> None:
    CACHE_HITS_TOTAL.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str = "memory") -> None:
    CACHE_MISSES_TOTAL.labels(cache_type=cache_type).inc()

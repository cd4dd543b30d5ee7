"""
Prometheus Metrics Module

Provides application metrics using the prometheus_client library.
Metrics are exposed at /metrics endpoint for Prometheus scraping.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# =============================================================================
# Application Info
# =============================================================================

APP_INFO = Info("eventhub_app", "eventhub application information")


def set_app_info(version: str, environment: str) -> None:
    """Set application info labels."""
    APP_INFO.info({"version": version, "environment": environment})


# =============================================================================
# Command Metrics
# =============================================================================

COMMANDS_TOTAL = Counter(
    "eventhub_commands_total",
    "Total commands dispatched",
    ["ops", "code", "status_code"],
)

COMMAND_DURATION_SECONDS = Histogram(
    "eventhub_command_duration_seconds",
    "Command handling duration in seconds",
    ["ops", "code"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# =============================================================================
# Browse Ledger Metrics
# =============================================================================

BROWSE_REPORTS_TOTAL = Counter(
    "eventhub_browse_reports_total",
    "Browse reports by outcome",
    ["outcome"],  # "recorded" or "duplicate"
)

# =============================================================================
# Connection Metrics
# =============================================================================

WS_CONNECTIONS_ACTIVE = Gauge(
    "eventhub_ws_connections_active",
    "Number of open websocket connections",
)


def track_command(ops: str, code: int, status_code: int, duration_seconds: float) -> None:
    """Record one dispatched command."""
    COMMANDS_TOTAL.labels(ops=ops, code=str(code), status_code=str(status_code)).inc()
    COMMAND_DURATION_SECONDS.labels(ops=ops, code=str(code)).observe(duration_seconds)

"""Prometheus metrics for question selection runs."""

from prometheus_client import Counter, Histogram, start_http_server

SELECTION_RUNS = Counter(
    "surveyor_selection_runs_total",
    "Total number of selection runs",
    labelnames=["outcome"],
)

SELECTION_LATENCY = Histogram(
    "surveyor_selection_latency_seconds",
    "End-to-end selection latency in seconds",
    labelnames=["processing_mode"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

STAGE_LATENCY = Histogram(
    "surveyor_stage_latency_seconds",
    "Latency of individual pipeline stages",
    labelnames=["stage"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5),
)

QUESTIONS_SELECTED = Histogram(
    "surveyor_questions_selected",
    "Number of questions selected per run",
    labelnames=["algorithm"],
    buckets=(0, 1, 2, 3, 4, 5, 6, 8, 10, 15),
)

TRIGGERS_FIRED = Counter(
    "surveyor_triggers_fired_total",
    "Total number of triggers that fired",
    labelnames=["kind"],
)

OPTIMIZER_FALLBACKS = Counter(
    "surveyor_optimizer_fallbacks_total",
    "Times the optimizer degraded to the greedy strategy",
    labelnames=["reason"],
)

LATENCY_BUDGET_EXCEEDED = Counter(
    "surveyor_latency_budget_exceeded_total",
    "Selection runs that exceeded the latency budget",
)


def setup_metrics(enabled: bool = True, port: int | None = None) -> bool:
    """Expose metrics over HTTP.

    Metrics are registered with the default registry when defined; this
    only starts the scrape endpoint when a port is given.

    Args:
        enabled: Whether metrics are exposed at all
        port: Port for the Prometheus scrape endpoint

    Returns:
        True if the scrape endpoint was started
    """
    if not enabled or port is None:
        return False
    start_http_server(port)
    return True

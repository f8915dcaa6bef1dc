"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"stepgroups_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"stepgroups_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

COMPETITION_MUTATIONS = Counter(
	"competitions_group_mutations_total",
	"Successful competition group mutations",
	["action"],
)

COMPETITION_ERRORS = Counter(
	"competitions_errors_total",
	"Competition domain errors surfaced to callers",
	["kind"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_competition_mutation(action: str) -> None:
	COMPETITION_MUTATIONS.labels(action=action).inc()


def inc_competition_error(kind: str) -> None:
	COMPETITION_ERRORS.labels(kind=kind).inc()

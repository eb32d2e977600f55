from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

from .schemas import Snapshot

# Metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration')
SNAPSHOT_DURATION = Histogram('dss_snapshot_duration_seconds', 'DSS snapshot computation time')
SNAPSHOT_CONFLICTS = Gauge('dss_snapshot_conflicts', 'Platform conflicts in the latest snapshot')
SNAPSHOT_TRAINS = Gauge('dss_snapshot_trains_in_window', 'Trains in the latest look-ahead window')
SUGGESTIONS_EMITTED = Counter('dss_suggestions_total', 'Suggestions emitted', ['source'])
RECOMMENDATIONS_STORED = Counter('dss_recommendations_stored_total', 'Webhook recommendations stored')
RECOMMENDATIONS_SKIPPED = Counter('dss_recommendations_skipped_total', 'Webhook recommendations skipped')

def record_request_metrics(method: str, endpoint: str, status_code: int, duration: float):
    """Record request metrics"""
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=str(status_code)).inc()
    REQUEST_DURATION.observe(duration)

def record_snapshot_metrics(snapshot: Snapshot, duration: float):
    SNAPSHOT_DURATION.observe(duration)
    SNAPSHOT_CONFLICTS.set(len(snapshot.conflicts))
    SNAPSHOT_TRAINS.set(len(snapshot.trains_now_window))

    illustrative = sum(1 for s in snapshot.suggestions if s.illustrative)
    SUGGESTIONS_EMITTED.labels(source="real").inc(len(snapshot.suggestions) - illustrative)
    SUGGESTIONS_EMITTED.labels(source="illustrative").inc(illustrative)

def record_webhook_metrics(stored: int, skipped: int):
    RECOMMENDATIONS_STORED.inc(stored)
    RECOMMENDATIONS_SKIPPED.inc(skipped)

def get_metrics():
    """Return Prometheus metrics"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

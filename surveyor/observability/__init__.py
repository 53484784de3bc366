"""Observability: structured logging and metrics.

Logging uses structlog; metrics are exposed through prometheus_client.
"""

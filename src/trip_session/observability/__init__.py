"""
trip_session.observability

structlog setup and the per-call logging context used by the dispatcher.
"""

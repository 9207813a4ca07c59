"""
trip_session

Session coordination layer for the trip-planning client.

Responsibilities:
- Re-export the composition root (`create_session_layer`) and its settings.
"""

from trip_session.client import SessionLayer, create_session_layer
from trip_session.settings import Settings

__all__ = ["SessionLayer", "Settings", "__version__", "create_session_layer"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Components live in subpackages; embedders normally need only the names above.

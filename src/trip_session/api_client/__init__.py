"""
trip_session.api_client

HTTP client boundary to the remote trip-planning API.

Responsibilities:
- Attach the current bearer credential to every outbound call.
- Single-flight credential renewal with FIFO replay of queued calls.
- Map failures into the layer's error taxonomy.
"""

# Package marker.

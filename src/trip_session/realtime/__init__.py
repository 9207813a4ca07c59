"""
trip_session.realtime

Real-time event channel package.

Responsibilities:
- Declarative inbound event table (event name -> notification kind).
- Transport abstraction and its WebSocket implementation.
- The channel manager that follows the session's authentication state.
"""

# Package marker.

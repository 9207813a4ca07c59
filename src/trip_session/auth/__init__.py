"""
trip_session.auth

Identity and credential package.

Responsibilities:
- The authenticated identity type (`Principal`) and its wire schemas.
- Capability checks and quota lookup.
- The credential store and its persistence backends.
"""

# Package marker.

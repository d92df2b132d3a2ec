"""Domain events pushed to dashboards.

An Event is a room, a type tag and a payload. Known types carry a typed
payload schema (schemas.py) so the publisher and the dashboard agree on
the payload shape; unknown types pass through as opaque JSON.
"""

from campusgate.events.schemas import Event, normalize_payload

__all__ = ["Event", "normalize_payload"]

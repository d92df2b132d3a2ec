"""Campus Gate — real-time notification gateway for the university portal.

Pushes live domain events (enrolments, course changes) to connected
administrator dashboards over WebSockets, with token-gated room access.
"""

__version__ = "0.1.0"

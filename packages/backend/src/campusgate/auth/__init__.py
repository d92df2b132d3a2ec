"""Authentication and authorization.

Two consumers share one token format:
1. HTTP routes → Bearer JWT checked per request (dependencies.py)
2. Real-time connections → JWT checked once, at room-join time (jwt.TokenVerifier)

Both resolve to a Claim: role (admin | student), subject id, expiry.
"""

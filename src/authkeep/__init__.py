"""authkeep — credential and session-token subsystem.

Multi-scheme password hashing with transparent scheme migration,
HMAC-signed expiring session tokens, and the per-request auth context
resolution pipeline that sits in front of a FastAPI backend.
"""

__version__ = "0.1.0"

"""
Homster Worker Service

Background worker for Cloud Tasks callbacks:
- Booking alert wave expiry and dispatch to the next wave
"""

__all__ = []

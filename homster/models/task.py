"""
Cloud Task payload models.

These models define the structure of task payloads sent by Cloud Tasks
to the worker service endpoints.
"""

from pydantic import BaseModel, Field


class AlertExpiryTask(BaseModel):
    """Booking alert wave expiry payload"""

    booking_id: str = Field(description="Booking whose alerts are expiring")
    wave: int = Field(ge=1, description="Wave the task was scheduled for")

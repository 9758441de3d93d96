"""
Homster real-time layer.

Socket.IO server, room naming and emission helpers shared by the API and
the worker service.
"""

from homster.realtime.server import (
    account_room,
    booking_room,
    emit_to_account,
    emit_to_room,
    sio,
)

__all__ = ["account_room", "booking_room", "emit_to_account", "emit_to_room", "sio"]

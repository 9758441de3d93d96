"""
Socket.IO server for real-time delivery.

Every authenticated socket joins the room of its account
(`user_<id>`, `vendor_<id>`, `worker_<id>`, `admin_<id>`). Sockets following
a booking join `booking_<id>` to exchange live locations.

When REDIS_URL is set, emission goes through Redis so the worker service
and every API instance reach the same connected clients.
"""

import logging
from typing import Any
from uuid import UUID

import socketio

from homster import config
from homster.db import DatabaseConnection, UnitOfWork
from homster.models.account import Role
from homster.utils.security import InvalidTokenError, decode_token

logger = logging.getLogger(__name__)


def _client_manager() -> socketio.AsyncManager | None:
    if not config.REDIS_URL:
        return None
    return socketio.AsyncRedisManager(config.REDIS_URL)


def _cors_allowed_origins() -> str | list[str]:
    origins = config.cors_origins()
    return "*" if origins == ["*"] else origins


sio = socketio.AsyncServer(
    async_mode="asgi",
    client_manager=_client_manager(),
    cors_allowed_origins=_cors_allowed_origins(),
)


def account_room(role: Role, account_id: str) -> str:
    return f"{role.room_prefix}_{account_id}"


def booking_room(booking_id: str) -> str:
    return f"booking_{booking_id}"


def _extract_token(environ: dict, auth: Any) -> str | None:
    """Token from the handshake auth payload, else the Authorization header."""
    if isinstance(auth, dict) and auth.get("token"):
        return auth["token"]

    header = environ.get("HTTP_AUTHORIZATION", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token
    return None


def _booking_id_from(data: Any) -> str | None:
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        return data.get("booking_id") or data.get("bookingId")
    return None


def _may_track(role: Role, account_id: str, booking_id: str) -> bool:
    """Whether the account is the booking's customer, vendor or assigned worker."""
    if role == Role.ADMIN:
        return True
    if not DatabaseConnection.is_initialized():
        return False
    try:
        UUID(booking_id)
    except ValueError:
        return False

    with UnitOfWork() as uow:
        if role == Role.USER:
            booking = uow.bookings.get_by_id_for_user(booking_id, account_id)
        elif role == Role.VENDOR:
            booking = uow.bookings.get_by_id_for_vendor(booking_id, account_id)
        else:
            booking = uow.bookings.get_by_id_for_worker(booking_id, account_id)
    return booking is not None


# =============================================================================
# Event handlers
# =============================================================================


@sio.event
async def connect(sid, environ, auth=None):
    """Authenticate the socket and join its account room."""
    token = _extract_token(environ, auth)
    if not token:
        raise socketio.exceptions.ConnectionRefusedError("Authentication required")

    try:
        claims = decode_token(token)
    except InvalidTokenError:
        raise socketio.exceptions.ConnectionRefusedError("Invalid token")

    await sio.save_session(
        sid, {"account_id": claims.account_id, "role": claims.role.value}
    )
    room = account_room(claims.role, claims.account_id)
    await sio.enter_room(sid, room)

    logger.info(
        "Socket connected",
        extra={"json_fields": {"sid": sid, "room": room}},
    )


@sio.event
async def disconnect(sid, *args):
    logger.info("Socket disconnected", extra={"json_fields": {"sid": sid}})


@sio.event
async def join_tracking(sid, data):
    """
    Join a booking room to send and receive live locations.

    Only the booking's customer, its vendor, the assigned worker and admins
    may join.
    """
    booking_id = _booking_id_from(data)
    if not booking_id:
        return {"ok": False, "error": "booking_id is required"}

    session = await sio.get_session(sid)
    if not _may_track(Role(session["role"]), session["account_id"], booking_id):
        logger.warning(
            "Tracking refused",
            extra={"json_fields": {"sid": sid, "booking_id": booking_id}},
        )
        return {"ok": False, "error": "Not a participant in this booking"}

    await sio.enter_room(sid, booking_room(booking_id))
    return {"ok": True, "room": booking_room(booking_id)}


@sio.event
async def leave_tracking(sid, data):
    booking_id = _booking_id_from(data)
    if booking_id:
        await sio.leave_room(sid, booking_room(booking_id))


@sio.event
async def update_location(sid, data):
    """
    Relay a live location to everyone else tracking the booking.

    Payload: {"booking_id": ..., "lat": ..., "lng": ...}. The sender must
    have joined the booking room first.
    """
    booking_id = _booking_id_from(data)
    if not booking_id or not isinstance(data, dict):
        return {"ok": False, "error": "booking_id, lat and lng are required"}

    lat, lng = data.get("lat"), data.get("lng")
    if lat is None or lng is None:
        return {"ok": False, "error": "booking_id, lat and lng are required"}

    room = booking_room(booking_id)
    if room not in sio.rooms(sid):
        return {"ok": False, "error": "Join tracking for this booking first"}

    session = await sio.get_session(sid)
    await sio.emit(
        "live_location_update",
        {"booking_id": booking_id, "lat": lat, "lng": lng, "role": session.get("role")},
        room=room,
        skip_sid=sid,
    )
    return {"ok": True}


# =============================================================================
# Emission helpers
# =============================================================================


async def emit_to_room(event: str, data: dict, room: str) -> bool:
    """
    Emit an event to a room.

    Delivery is best effort: a failure is logged and reported to the caller
    but never raised, since the triggering change is already committed.

    Returns:
        True if the event was handed to the server
    """
    try:
        await sio.emit(event, data, room=room)
        return True
    except Exception as e:
        logger.warning(
            "Socket emit failed",
            extra={"json_fields": {"event": event, "room": room, "error": str(e)}},
        )
        return False


async def emit_to_account(role: Role, account_id: str, event: str, data: dict) -> bool:
    return await emit_to_room(event, data, account_room(role, account_id))

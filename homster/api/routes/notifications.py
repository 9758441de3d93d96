"""
Notification API routes.

Every role reads and clears its own in-app notifications here. The same
notifications are pushed live over the socket when they are created.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from homster.api.auth import Principal, get_principal
from homster.db import DatabaseConnection, UnitOfWork
from homster.models.notification import (
    Notification,
    NotificationBulkResponse,
    NotificationListResponse,
)

router = APIRouter()


def _check_db_available():
    """Check if database is available, raise 503 if not."""
    if not DatabaseConnection.is_initialized():
        raise HTTPException(
            status_code=503,
            detail="Database not available",
        )


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    principal: Principal = Depends(get_principal),
    is_read: bool | None = Query(default=None, description="Filter by read state"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum notifications to return"),
    offset: int = Query(default=0, ge=0, description="Number of notifications to skip"),
) -> NotificationListResponse:
    """
    List the caller's notifications, newest first.

    The unread count is always over all notifications, regardless of the
    read-state filter.
    """
    _check_db_available()

    with UnitOfWork() as uow:
        repo = uow.notifications
        notifications = repo.list_for_recipient(
            principal.role,
            principal.account_id,
            is_read=is_read,
            limit=limit,
            offset=offset,
        )
        total = repo.count_for_recipient(principal.role, principal.account_id, is_read=is_read)
        unread_count = repo.count_for_recipient(
            principal.role, principal.account_id, is_read=False
        )

        return NotificationListResponse(
            notifications=notifications,
            total=total,
            unread_count=unread_count,
            limit=limit,
            offset=offset,
        )


@router.put("/notifications/read-all", response_model=NotificationBulkResponse)
async def mark_all_read(
    principal: Principal = Depends(get_principal),
) -> NotificationBulkResponse:
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            updated = uow.notifications.mark_all_read(principal.role, principal.account_id)
            uow.commit()
            return NotificationBulkResponse(updated=updated)

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to mark notifications read: {str(e)}",
        )


@router.delete("/notifications/delete-all", response_model=NotificationBulkResponse)
async def delete_all_notifications(
    principal: Principal = Depends(get_principal),
) -> NotificationBulkResponse:
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            deleted = uow.notifications.delete_all_for_recipient(
                principal.role, principal.account_id
            )
            uow.commit()
            return NotificationBulkResponse(updated=deleted)

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete notifications: {str(e)}",
        )


@router.put("/notifications/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: str,
    principal: Principal = Depends(get_principal),
) -> Notification:
    """
    Mark one notification read.

    Raises:
        404: Notification not found or not the caller's
    """
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            notification = uow.notifications.mark_read(
                notification_id, principal.role, principal.account_id
            )
            if notification is None:
                raise HTTPException(
                    status_code=404,
                    detail=f"Notification not found: {notification_id}",
                )
            uow.commit()
            return notification

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to mark notification read: {str(e)}",
        )


@router.delete("/notifications/{notification_id}")
async def delete_notification(
    notification_id: str,
    principal: Principal = Depends(get_principal),
) -> dict:
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            if not uow.notifications.delete_for_recipient(
                notification_id, principal.role, principal.account_id
            ):
                raise HTTPException(
                    status_code=404,
                    detail=f"Notification not found: {notification_id}",
                )
            uow.commit()
            return {"message": f"Notification {notification_id} deleted successfully"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete notification: {str(e)}",
        )

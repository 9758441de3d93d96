"""
Scrap pickup API routes.

Users list scrap for pickup; vendors and admins take pending items and
close them out once collected.
"""

from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status

from homster.api.auth import Principal, get_principal, require_roles
from homster.db import DatabaseConnection, UnitOfWork
from homster.db.repositories.base import utcnow
from homster.models.account import Role
from homster.models.notification import NotificationType, RelatedType
from homster.models.scrap import (
    Scrap,
    ScrapAcceptRequest,
    ScrapCompleteRequest,
    ScrapCreateRequest,
    ScrapListResponse,
    ScrapStatus,
)
from homster.services.notifications import Outbox

router = APIRouter()

customer = require_roles(Role.USER)
vendor_only = require_roles(Role.VENDOR)
admin_only = require_roles(Role.ADMIN)
handler = require_roles(Role.VENDOR, Role.ADMIN)


def _check_db_available():
    """Check if database is available, raise 503 if not."""
    if not DatabaseConnection.is_initialized():
        raise HTTPException(
            status_code=503,
            detail="Database not available",
        )


def _get_scrap(uow: UnitOfWork, scrap_id: str) -> Scrap:
    scrap = uow.scraps.get_by_id(scrap_id)
    if scrap is None:
        raise HTTPException(
            status_code=404,
            detail=f"Scrap item not found: {scrap_id}",
        )
    return scrap


def _handler_label(role: Role) -> str:
    return "An admin" if role == Role.ADMIN else "A vendor"


@router.post("/scrap", response_model=Scrap, status_code=status.HTTP_201_CREATED)
async def create_scrap(
    request: ScrapCreateRequest,
    principal: Principal = Depends(customer),
) -> Scrap:
    """List scrap for pickup and let admins know."""
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            scrap = uow.scraps.create(
                Scrap(
                    id=str(uuid4()),
                    user_id=principal.account_id,
                    title=request.title,
                    description=request.description,
                    category=request.category,
                    quantity=request.quantity,
                    expected_price=request.expected_price,
                    images=request.images,
                    address=request.address,
                )
            )
            outbox.notify(
                uow,
                Role.USER,
                principal.account_id,
                NotificationType.SCRAP_LISTED,
                "Scrap listed",
                f"'{scrap.title}' is listed. We will let you know when it is picked up.",
                related_id=scrap.id,
                related_type=RelatedType.SCRAP,
            )
            outbox.notify_admins(
                uow,
                NotificationType.NEW_SCRAP_ADDED,
                "New scrap listed",
                f"A user listed '{scrap.title}' for pickup.",
                related_id=scrap.id,
                related_type=RelatedType.SCRAP,
            )
            uow.commit()

        await outbox.flush()
        return scrap

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to list scrap: {str(e)}",
        )


@router.get("/scrap/my", response_model=ScrapListResponse)
async def list_my_scrap(principal: Principal = Depends(customer)) -> ScrapListResponse:
    _check_db_available()

    with UnitOfWork() as uow:
        items = uow.scraps.list_by_user(principal.account_id)
        return ScrapListResponse(items=items, total=len(items))


@router.get("/scrap/available", response_model=ScrapListResponse)
async def list_available_scrap(
    principal: Principal = Depends(handler),
) -> ScrapListResponse:
    """Pending items waiting for someone to take them."""
    _check_db_available()

    with UnitOfWork() as uow:
        items = uow.scraps.list_by_status(ScrapStatus.PENDING)
        return ScrapListResponse(items=items, total=len(items))


@router.get("/scrap/accepted", response_model=ScrapListResponse)
async def list_accepted_scrap(
    principal: Principal = Depends(vendor_only),
) -> ScrapListResponse:
    _check_db_available()

    with UnitOfWork() as uow:
        items = uow.scraps.list_accepted_by_vendor(principal.account_id)
        return ScrapListResponse(items=items, total=len(items))


@router.get("/scrap/all", response_model=ScrapListResponse)
async def list_all_scrap(principal: Principal = Depends(admin_only)) -> ScrapListResponse:
    _check_db_available()

    with UnitOfWork() as uow:
        items = uow.scraps.list_all()
        return ScrapListResponse(items=items, total=len(items))


@router.get("/scrap/{scrap_id}", response_model=Scrap)
async def get_scrap(
    scrap_id: str,
    principal: Principal = Depends(get_principal),
) -> Scrap:
    _check_db_available()

    with UnitOfWork() as uow:
        return _get_scrap(uow, scrap_id)


@router.put("/scrap/{scrap_id}/accept", response_model=Scrap)
async def accept_scrap(
    scrap_id: str,
    request: ScrapAcceptRequest | None = None,
    principal: Principal = Depends(handler),
) -> Scrap:
    """
    Take a pending item for pickup.

    Raises:
        404: Item not found
        400: Item already taken or cancelled
    """
    _check_db_available()

    pickup_date = (request.pickup_date if request else None) or utcnow()
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            _get_scrap(uow, scrap_id)

            scrap = uow.scraps.accept(
                scrap_id, principal.account_id, principal.role, pickup_date
            )
            if scrap is None:
                raise HTTPException(
                    status_code=400,
                    detail="Item already taken or cancelled",
                )

            outbox.notify(
                uow,
                Role.USER,
                scrap.user_id,
                NotificationType.SCRAP_ACCEPTED,
                "Scrap pickup scheduled",
                f"{_handler_label(principal.role)} accepted '{scrap.title}' for pickup "
                f"on {pickup_date:%d %b %Y}.",
                related_id=scrap.id,
                related_type=RelatedType.SCRAP,
            )
            uow.commit()

        await outbox.flush()
        return scrap

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to accept scrap: {str(e)}",
        )


@router.put("/scrap/{scrap_id}/complete", response_model=Scrap)
async def complete_scrap(
    scrap_id: str,
    request: ScrapCompleteRequest | None = None,
    principal: Principal = Depends(handler),
) -> Scrap:
    """
    Mark an accepted item as picked up.

    Raises:
        400: Item not accepted
        403: Vendor is not the one who accepted it
    """
    _check_db_available()

    final_price = request.final_price if request else None
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            existing = _get_scrap(uow, scrap_id)

            if existing.status != ScrapStatus.ACCEPTED:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot complete a {existing.status.value} item",
                )
            if principal.role == Role.VENDOR and existing.vendor_id != principal.account_id:
                raise HTTPException(
                    status_code=403,
                    detail="Only the vendor who accepted this item can complete it",
                )

            scrap = uow.scraps.complete(scrap_id, final_price)
            if scrap is None:
                raise HTTPException(
                    status_code=400,
                    detail="Item changed while completing, please retry",
                )

            outbox.notify(
                uow,
                Role.USER,
                scrap.user_id,
                NotificationType.SCRAP_COMPLETED,
                "Scrap picked up",
                f"'{scrap.title}' has been picked up.",
                related_id=scrap.id,
                related_type=RelatedType.SCRAP,
                data={"final_price": scrap.final_price},
            )
            uow.commit()

        await outbox.flush()
        return scrap

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to complete scrap: {str(e)}",
        )


@router.post("/scrap/{scrap_id}/cancel", response_model=Scrap)
async def cancel_scrap(
    scrap_id: str,
    principal: Principal = Depends(customer),
) -> Scrap:
    """
    Withdraw a pending listing.

    Raises:
        404: Item not found or not the caller's
        400: Item no longer pending
    """
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            existing = _get_scrap(uow, scrap_id)
            if existing.user_id != principal.account_id:
                raise HTTPException(
                    status_code=404,
                    detail=f"Scrap item not found: {scrap_id}",
                )

            scrap = uow.scraps.cancel(scrap_id, principal.account_id)
            if scrap is None:
                raise HTTPException(
                    status_code=400,
                    detail="Only pending items can be cancelled",
                )
            uow.commit()
            return scrap

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to cancel scrap: {str(e)}",
        )


@router.delete("/scrap/{scrap_id}")
async def delete_scrap(
    scrap_id: str,
    principal: Principal = Depends(get_principal),
) -> dict:
    """
    Delete a listing.

    Raises:
        403: Caller is neither the owner nor an admin
    """
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            scrap = _get_scrap(uow, scrap_id)

            is_owner = principal.role == Role.USER and scrap.user_id == principal.account_id
            if not is_owner and principal.role != Role.ADMIN:
                raise HTTPException(
                    status_code=403,
                    detail="Only the owner or an admin can delete this item",
                )

            uow.scraps.delete_by_id(scrap_id)
            uow.commit()
            return {"message": f"Scrap item {scrap_id} deleted successfully"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete scrap: {str(e)}",
        )

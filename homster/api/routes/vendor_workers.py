"""
Vendor worker roster API routes.
"""

from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status

from homster.api.auth import Principal, require_roles
from homster.db import DatabaseConnection, UnitOfWork
from homster.db.repositories.base import as_uuid, utcnow
from homster.models.account import (
    Role,
    Worker,
    WorkerCreateRequest,
    WorkerListResponse,
    WorkerStatus,
    WorkerUpdateRequest,
)
from homster.utils.security import hash_password

router = APIRouter()

vendor_only = require_roles(Role.VENDOR)


def _check_db_available():
    """Check if database is available, raise 503 if not."""
    if not DatabaseConnection.is_initialized():
        raise HTTPException(
            status_code=503,
            detail="Database not available",
        )


@router.get("/vendors/workers", response_model=WorkerListResponse)
async def list_workers(
    principal: Principal = Depends(vendor_only),
) -> WorkerListResponse:
    _check_db_available()

    with UnitOfWork() as uow:
        workers = uow.workers.list_by_vendor(principal.account_id)
        return WorkerListResponse(workers=workers, total=len(workers))


@router.post(
    "/vendors/workers",
    response_model=Worker,
    status_code=status.HTTP_201_CREATED,
)
async def create_worker(
    request: WorkerCreateRequest,
    principal: Principal = Depends(vendor_only),
) -> Worker:
    """
    Add a worker to the vendor's roster.

    Raises:
        409: Phone number already registered
    """
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            if uow.workers.get_by_phone(request.phone) is not None:
                raise HTTPException(
                    status_code=409,
                    detail="Phone number already registered",
                )

            worker = uow.workers.register(
                Worker(
                    id=str(uuid4()),
                    vendor_id=principal.account_id,
                    name=request.name,
                    phone=request.phone,
                    email=request.email,
                    status=WorkerStatus.ACTIVE,
                ),
                hash_password(request.password),
            )
            uow.commit()
            return worker

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create worker: {str(e)}",
        )


@router.get("/vendors/workers/{worker_id}", response_model=Worker)
async def get_worker(
    worker_id: str,
    principal: Principal = Depends(vendor_only),
) -> Worker:
    _check_db_available()

    with UnitOfWork() as uow:
        worker = uow.workers.get_for_vendor(worker_id, principal.account_id)
        if worker is None:
            raise HTTPException(
                status_code=404,
                detail=f"Worker not found: {worker_id}",
            )
        return worker


@router.patch("/vendors/workers/{worker_id}", response_model=Worker)
async def update_worker(
    worker_id: str,
    request: WorkerUpdateRequest,
    principal: Principal = Depends(vendor_only),
) -> Worker:
    """Edit a worker's name, email or availability."""
    _check_db_available()

    fields = request.model_dump(exclude_none=True)
    if "status" in fields:
        fields["status"] = fields["status"].value

    try:
        with UnitOfWork() as uow:
            worker = uow.workers.get_for_vendor(worker_id, principal.account_id)
            if worker is None:
                raise HTTPException(
                    status_code=404,
                    detail=f"Worker not found: {worker_id}",
                )
            if not fields:
                return worker

            updated = uow.workers.update_returning(
                worker_id,
                uow.workers.table.c.vendor_id == as_uuid(principal.account_id),
                updated_at=utcnow(),
                **fields,
            )
            uow.commit()
            return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update worker: {str(e)}",
        )


@router.delete("/vendors/workers/{worker_id}")
async def remove_worker(
    worker_id: str,
    principal: Principal = Depends(vendor_only),
) -> dict:
    """
    Remove a worker from the roster.

    The worker account is kept, only detached from the vendor.
    """
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            if not uow.workers.unlink(worker_id, principal.account_id):
                raise HTTPException(
                    status_code=404,
                    detail=f"Worker not found: {worker_id}",
                )
            uow.commit()
            return {"message": f"Worker {worker_id} removed successfully"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to remove worker: {str(e)}",
        )

"""Admin endpoints. Every route requires the ADMIN role.

- Workflow moderation queue, approve and reject
- User role management
- Seller verification queue, approve and reject
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.workflows import _with_ratings
from api.schemas.admin import (
    SellerListResponse,
    SellerResponse,
    SellerReviewRequest,
    UserRolesResponse,
    UserRolesUpdate,
    WorkflowRejectRequest,
)
from api.schemas.common import PaginationParams
from api.schemas.workflow import WorkflowListResponse, WorkflowResponse
from app.dependencies import get_db
from core.constants import SellerVerificationStatus
from core.rbac import require_admin
from core.security import CurrentUser
from core.utils import calculate_offset, total_pages
from services.user_service import UserService
from services.workflow_service import WorkflowService

router = APIRouter()


# ─── Workflow moderation ────────────────────────────────────────────────────

@router.get("/workflows/pending", response_model=WorkflowListResponse)
async def pending_workflows(
    pagination: PaginationParams = Depends(),
    current_user: CurrentUser = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
) -> WorkflowListResponse:
    """Listings waiting for review, oldest first."""
    workflows, total = await WorkflowService(db).list_pending(
        offset=calculate_offset(pagination.page, pagination.per_page),
        limit=pagination.per_page,
    )
    return WorkflowListResponse(
        workflows=await _with_ratings(db, workflows),
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        total_pages=total_pages(total, pagination.per_page),
    )


@router.post("/workflows/{workflow_id}/approve", response_model=WorkflowResponse)
async def approve_workflow(
    workflow_id: str,
    current_user: CurrentUser = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    """Approve a PENDING listing; 404 for any other status."""
    workflow = await WorkflowService(db).approve(workflow_id, current_user.id)
    return (await _with_ratings(db, [workflow]))[0]


@router.post("/workflows/{workflow_id}/reject", response_model=WorkflowResponse)
async def reject_workflow(
    workflow_id: str,
    request: Optional[WorkflowRejectRequest] = Body(None),
    current_user: CurrentUser = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    """Reject a PENDING listing and hide it; 404 for any other status."""
    workflow = await WorkflowService(db).reject(
        workflow_id, current_user.id, reason=request.reason if request else None
    )
    return (await _with_ratings(db, [workflow]))[0]


# ─── Roles ──────────────────────────────────────────────────────────────────

@router.get("/users/{user_id}/roles", response_model=UserRolesResponse)
async def get_user_roles(
    user_id: str,
    current_user: CurrentUser = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
) -> UserRolesResponse:
    user = await UserService(db).get_or_404(user_id)
    return UserRolesResponse(user_id=user.id, email=user.email, name=user.name, roles=list(user.roles or []))


@router.put("/users/{user_id}/roles", response_model=UserRolesResponse)
async def update_user_roles(
    user_id: str,
    request: UserRolesUpdate,
    current_user: CurrentUser = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
) -> UserRolesResponse:
    """Replace a user's roles."""
    user = await UserService(db).set_roles(user_id, request.roles, actor_id=current_user.id)
    return UserRolesResponse(user_id=user.id, email=user.email, name=user.name, roles=list(user.roles))


# ─── Sellers ────────────────────────────────────────────────────────────────

@router.get("/sellers", response_model=SellerListResponse)
async def list_sellers(
    pagination: PaginationParams = Depends(),
    status_filter: Optional[SellerVerificationStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=200),
    current_user: CurrentUser = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
) -> SellerListResponse:
    """Developers and their verification status."""
    rows, total = await UserService(db).list_sellers(
        status=status_filter,
        search=search,
        offset=calculate_offset(pagination.page, pagination.per_page),
        limit=pagination.per_page,
    )
    return SellerListResponse(
        sellers=[
            SellerResponse(
                user_id=user.id,
                email=user.email,
                name=user.name,
                status=verification.status if verification else SellerVerificationStatus.PENDING.value,
                notes=verification.notes if verification else None,
                reviewed_at=verification.reviewed_at if verification else None,
                created_at=user.created_at,
            )
            for user, verification in rows
        ],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        total_pages=total_pages(total, pagination.per_page),
    )


async def _review_seller(db: AsyncSession, user_id: str, approve: bool, actor: CurrentUser, notes: Optional[str]):
    svc = UserService(db)
    verification = await svc.review_seller(user_id, approve, actor.id, notes)
    user = await svc.get_or_404(user_id)
    return SellerResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        status=verification.status,
        notes=verification.notes,
        reviewed_at=verification.reviewed_at,
        created_at=user.created_at,
    )


@router.post("/sellers/{user_id}/approve", response_model=SellerResponse)
async def approve_seller(
    user_id: str,
    request: Optional[SellerReviewRequest] = Body(None),
    current_user: CurrentUser = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
) -> SellerResponse:
    return await _review_seller(db, user_id, True, current_user, request.notes if request else None)


@router.post("/sellers/{user_id}/reject", response_model=SellerResponse)
async def reject_seller(
    user_id: str,
    request: Optional[SellerReviewRequest] = Body(None),
    current_user: CurrentUser = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
) -> SellerResponse:
    return await _review_seller(db, user_id, False, current_user, request.notes if request else None)

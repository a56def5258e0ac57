"""Workflow catalogue endpoints — list, featured, get, create, update, delete, download."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from api.schemas.common import MessageResponse, PaginationParams
from api.schemas.review import ReviewResponse
from api.schemas.workflow import (
    WorkflowCreate,
    WorkflowDetailResponse,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowUpdate,
)
from app.dependencies import get_current_active_user, get_db, get_optional_user
from core.constants import Role, WorkflowStatus
from core.exceptions import AuthorizationDenied, NotFound
from core.rbac import require_role
from core.roles import can_modify
from core.security import CurrentUser
from core.utils import attachment_filename, calculate_offset, total_pages
from db.models.review import Review
from db.models.workflow import Workflow
from services.purchase_service import PurchaseService
from services.review_service import ReviewService
from services.storage_service import WorkflowFileStorage, get_file_storage
from services.workflow_service import WorkflowService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["workflows"])


def _workflow_to_response(wf: Workflow, rating: tuple[float, int] = (0.0, 0)) -> WorkflowResponse:
    """Convert a Workflow ORM object to response schema."""
    return WorkflowResponse(
        id=wf.id,
        name=wf.name,
        description=wf.description or "",
        price=float(wf.price),
        status=wf.status,
        is_public=wf.is_public,
        is_featured=wf.is_featured,
        downloads=wf.downloads,
        tags=wf.tag_names,
        owner_id=wf.user_id,
        owner_name=wf.owner.name if wf.owner else None,
        prerequisites=wf.prerequisites,
        documentation=wf.documentation,
        media_urls=list(wf.media_urls or []),
        video_url=wf.video_url,
        average_rating=rating[0],
        review_count=rating[1],
        created_at=wf.created_at,
        updated_at=wf.updated_at,
    )


def review_to_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        workflow_id=review.workflow_id,
        user_id=review.user_id,
        user_name=review.user.name if review.user else None,
        rating=review.rating,
        review_text=review.review_text,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


async def _with_ratings(db: AsyncSession, workflows: list[Workflow]) -> list[WorkflowResponse]:
    summaries = await ReviewService(db).rating_summaries(wf.id for wf in workflows)
    return [_workflow_to_response(wf, summaries.get(wf.id, (0.0, 0))) for wf in workflows]


@router.get("/", response_model=WorkflowListResponse)
async def list_workflows(
    pagination: PaginationParams = Depends(),
    status_filter: WorkflowStatus = Query(WorkflowStatus.APPROVED, alias="status"),
    tag: Optional[str] = Query(None, description="Only listings with this tag"),
    search: Optional[str] = Query(None, max_length=200, description="Match name or description"),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> WorkflowListResponse:
    """
    Browse the catalogue (paginated). Only admins may list
    PENDING or REJECTED listings.
    """
    if status_filter != WorkflowStatus.APPROVED and not (current_user and current_user.is_admin):
        raise AuthorizationDenied("Only admins can list unapproved workflows")

    workflows, total = await WorkflowService(db).list_catalogue(
        status=status_filter,
        tag=tag,
        search=search,
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


@router.get("/featured", response_model=list[WorkflowResponse])
async def featured_workflows(db: AsyncSession = Depends(get_db)) -> list[WorkflowResponse]:
    """The most downloaded approved listings."""
    return await _with_ratings(db, await WorkflowService(db).list_featured())


@router.get("/mine", response_model=list[WorkflowResponse])
async def my_workflows(
    current_user: CurrentUser = Depends(require_role(Role.DEVELOPER)),
    db: AsyncSession = Depends(get_db),
) -> list[WorkflowResponse]:
    """The caller's own listings in every status."""
    return await _with_ratings(db, await WorkflowService(db).list_for_owner(current_user.id))


@router.get("/{workflow_id}", response_model=WorkflowDetailResponse)
async def get_workflow(
    workflow_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> WorkflowDetailResponse:
    """A listing with reviews. Unapproved listings are visible to their owner and admins only."""
    workflow = await WorkflowService(db).get_or_404(workflow_id)
    if workflow.status != WorkflowStatus.APPROVED.value and not (
        current_user and can_modify(workflow.user_id, current_user.id, current_user.roles)
    ):
        raise NotFound("Workflow not found")

    reviews, average, count = await ReviewService(db).list_for_workflow(workflow_id)
    base = _workflow_to_response(workflow, (average, count))
    return WorkflowDetailResponse(
        **base.model_dump(),
        reviews=[review_to_response(r) for r in reviews],
    )


@router.post("/", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    request: WorkflowCreate,
    current_user: CurrentUser = Depends(require_role(Role.DEVELOPER)),
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    """Submit a listing. It stays PENDING until an admin approves it."""
    workflow = await WorkflowService(db).create_workflow(
        current_user, request.model_fields_for_db(), request.tags
    )
    return _workflow_to_response(workflow)


@router.put("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: str,
    request: WorkflowUpdate,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    """Edit a listing (owner or admin). The listing goes back to PENDING."""
    workflow = await WorkflowService(db).update_workflow(
        workflow_id, current_user, request.model_fields_for_db(), request.tags
    )
    return (await _with_ratings(db, [workflow]))[0]


@router.delete("/{workflow_id}", response_model=MessageResponse)
async def delete_workflow(
    workflow_id: str,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Remove a listing (owner or admin)."""
    await WorkflowService(db).delete_workflow(workflow_id, current_user)
    return MessageResponse(message="Workflow deleted")


@router.get("/{workflow_id}/download")
async def download_workflow(
    workflow_id: str,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: WorkflowFileStorage = Depends(get_file_storage),
) -> Response:
    """
    Download the workflow file. Allowed for the owner, admins and
    buyers with a completed purchase. Downloads by anyone but the
    owner count towards the listing's download total.
    """
    workflow = await WorkflowService(db).get_or_404(workflow_id)
    purchases = PurchaseService(db)

    is_owner = workflow.user_id == current_user.id
    if not (
        is_owner
        or current_user.is_admin
        or await purchases.has_completed_purchase(workflow_id, current_user.id)
    ):
        raise AuthorizationDenied("Purchase this workflow to download it")

    content = await storage.fetch(workflow.file_url)

    if not is_owner:
        await purchases.increment_downloads(workflow_id)

    logger.info(f"Workflow downloaded: {workflow_id} by={current_user.id}")
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{attachment_filename(workflow.name)}"'},
    )

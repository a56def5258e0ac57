"""Tag endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.workflow import TagResponse
from app.dependencies import get_db
from services.workflow_service import WorkflowService

router = APIRouter(tags=["tags"])


@router.get("/", response_model=list[TagResponse])
async def list_tags(db: AsyncSession = Depends(get_db)) -> list[TagResponse]:
    """All tags with their listing counts."""
    return [
        TagResponse(name=name, workflow_count=count)
        for name, count in await WorkflowService(db).list_tags()
    ]

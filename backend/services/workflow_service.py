"""Workflow service — catalogue, listing management and moderation."""

import logging
from typing import Any, Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import AuditAction, FEATURED_WORKFLOWS_LIMIT, WorkflowStatus
from core.exceptions import AuthorizationDenied, NotFound
from core.rbac import ensure_owner_or_admin
from core.security import CurrentUser
from db.models.tag import Tag, workflow_tags
from db.models.workflow import Workflow
from services.audit_service import record_audit
from services.base import BaseService
from services.user_service import UserService

logger = logging.getLogger(__name__)


def clean_tag_names(names: Iterable[str]) -> list[str]:
    """Strip blanks and duplicates, keeping first-seen order."""
    cleaned: list[str] = []
    for name in names:
        name = name.strip()
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


class WorkflowService(BaseService[Workflow]):
    """Service for workflow listings."""

    def __init__(self, db: AsyncSession):
        super().__init__(Workflow, db)

    async def get_or_404(self, workflow_id: str) -> Workflow:
        result = await self.db.execute(
            select(Workflow)
            .where(Workflow.id == workflow_id, Workflow.is_deleted == False)  # noqa: E712
            .execution_options(populate_existing=True)
        )
        workflow = result.scalar_one_or_none()
        if workflow is None:
            raise NotFound("Workflow not found")
        return workflow

    # ─── Catalogue ─────────────────────────────────────────

    async def list_catalogue(
        self,
        status: WorkflowStatus = WorkflowStatus.APPROVED,
        tag: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Workflow], int]:
        """Public listings, newest first."""
        conditions = [
            Workflow.is_deleted == False,  # noqa: E712
            Workflow.status == status.value,
        ]
        if status == WorkflowStatus.APPROVED:
            conditions.append(Workflow.is_public == True)  # noqa: E712
        if tag:
            conditions.append(Workflow.tags.any(Tag.name == tag))
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(Workflow.name.ilike(pattern), Workflow.description.ilike(pattern)))

        result = await self.db.execute(
            select(Workflow)
            .where(*conditions)
            .order_by(Workflow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        total = await self.db.execute(select(func.count()).select_from(Workflow).where(*conditions))
        return list(result.scalars().all()), total.scalar() or 0

    async def list_featured(self, limit: int = FEATURED_WORKFLOWS_LIMIT) -> list[Workflow]:
        """Most downloaded approved public listings."""
        result = await self.db.execute(
            select(Workflow)
            .where(
                Workflow.is_deleted == False,  # noqa: E712
                Workflow.status == WorkflowStatus.APPROVED.value,
                Workflow.is_public == True,  # noqa: E712
            )
            .order_by(Workflow.downloads.desc(), Workflow.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_for_owner(self, owner_id: str) -> list[Workflow]:
        result = await self.db.execute(
            select(Workflow)
            .where(Workflow.user_id == owner_id, Workflow.is_deleted == False)  # noqa: E712
            .order_by(Workflow.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_pending(self, offset: int = 0, limit: int = 20) -> tuple[list[Workflow], int]:
        """Moderation queue, oldest submission first."""
        items, total = await self.list(
            offset=offset,
            limit=limit,
            order_by="updated_at",
            order_desc=False,
            filters={"status": WorkflowStatus.PENDING.value},
        )
        return list(items), total

    # ─── Tags ──────────────────────────────────────────────

    async def _resolve_tags(self, names: Iterable[str]) -> list[Tag]:
        """Existing tags by name, creating the missing ones."""
        names = clean_tag_names(names)
        if not names:
            return []
        result = await self.db.execute(select(Tag).where(Tag.name.in_(names)))
        by_name = {t.name: t for t in result.scalars().all()}
        for name in names:
            if name not in by_name:
                by_name[name] = await self._create_tag(name)
        return [by_name[n] for n in names]

    async def _create_tag(self, name: str) -> Tag:
        """Insert a new tag, or pick up the row a concurrent request just created."""
        try:
            async with self.db.begin_nested():
                tag = Tag(name=name)
                self.db.add(tag)
                await self.db.flush()
            return tag
        except IntegrityError:
            logger.info(f"Tag created concurrently, reusing it: {name}")
            result = await self.db.execute(select(Tag).where(Tag.name == name))
            return result.scalar_one()

    async def list_tags(self) -> list[tuple[str, int]]:
        """All tags with how many live listings use them."""
        result = await self.db.execute(
            select(Tag.name, func.count(Workflow.id))
            .select_from(Tag)
            .outerjoin(workflow_tags, workflow_tags.c.tag_id == Tag.id)
            .outerjoin(
                Workflow,
                (Workflow.id == workflow_tags.c.workflow_id) & (Workflow.is_deleted == False),  # noqa: E712
            )
            .group_by(Tag.name)
            .order_by(Tag.name)
        )
        return [(name, count) for name, count in result.all()]

    # ─── Listing management ────────────────────────────────

    async def create_workflow(self, owner: CurrentUser, data: dict[str, Any], tags: Iterable[str]) -> Workflow:
        """Submit a listing for review. New listings start PENDING."""
        workflow = Workflow(
            user_id=owner.id,
            status=WorkflowStatus.PENDING.value,
            tags=await self._resolve_tags(tags),
            **data,
        )
        self.db.add(workflow)
        await self.db.flush()
        logger.info(f"Workflow submitted: {workflow.id} by={owner.id}")
        return await self.get_or_404(workflow.id)

    async def update_workflow(
        self,
        workflow_id: str,
        user: CurrentUser,
        data: dict[str, Any],
        tags: Optional[Iterable[str]] = None,
    ) -> Workflow:
        """Edit a listing and send it back to the moderation queue.

        Owner or admin. An owner who is not an admin must also be a
        developer with an approved seller verification.
        """
        workflow = await self.get_or_404(workflow_id)
        ensure_owner_or_admin(workflow.user_id, user, "workflow")

        if not user.is_admin:
            if not user.is_developer:
                raise AuthorizationDenied("Only developers can edit workflows")
            if not await UserService(self.db).is_verified_seller(user.id):
                raise AuthorizationDenied("Seller verification must be approved before editing workflows")

        if tags is not None:
            workflow.tags = await self._resolve_tags(tags)
        data = dict(data, status=WorkflowStatus.PENDING.value)
        await self.apply(workflow, data)
        logger.info(f"Workflow updated and resubmitted: {workflow.id} by={user.id}")
        return await self.get_or_404(workflow.id)

    async def delete_workflow(self, workflow_id: str, user: CurrentUser) -> None:
        """Soft-delete a listing. Owner or admin."""
        workflow = await self.get_or_404(workflow_id)
        ensure_owner_or_admin(workflow.user_id, user, "workflow")
        workflow.soft_delete()
        await self.db.flush()
        logger.info(f"Workflow deleted: {workflow.id} by={user.id}")

    # ─── Moderation ────────────────────────────────────────

    async def _get_pending(self, workflow_id: str) -> Workflow:
        workflow = await self.get_or_404(workflow_id)
        if workflow.status != WorkflowStatus.PENDING.value:
            raise NotFound("Workflow not found or not pending review")
        return workflow

    async def approve(self, workflow_id: str, actor_id: str) -> Workflow:
        """PENDING -> APPROVED; the listing becomes public."""
        workflow = await self._get_pending(workflow_id)
        await self.apply(workflow, {"status": WorkflowStatus.APPROVED.value, "is_public": True})
        await record_audit(
            self.db, actor_id, AuditAction.WORKFLOW_APPROVED, "workflow", workflow.id,
            old_values={"status": WorkflowStatus.PENDING.value},
            new_values={"status": WorkflowStatus.APPROVED.value},
        )
        return await self.get_or_404(workflow.id)

    async def reject(self, workflow_id: str, actor_id: str, reason: Optional[str] = None) -> Workflow:
        """PENDING -> REJECTED; the listing is hidden."""
        workflow = await self._get_pending(workflow_id)
        await self.apply(workflow, {"status": WorkflowStatus.REJECTED.value, "is_public": False})
        await record_audit(
            self.db, actor_id, AuditAction.WORKFLOW_REJECTED, "workflow", workflow.id,
            old_values={"status": WorkflowStatus.PENDING.value},
            new_values={"status": WorkflowStatus.REJECTED.value, "reason": reason},
        )
        return await self.get_or_404(workflow.id)

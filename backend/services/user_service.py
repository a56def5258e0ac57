"""User service — role management and seller verification."""

from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import AuditAction, Role, SellerVerificationStatus
from core.exceptions import NotFound
from db.models.seller_verification import SellerVerification
from db.models.user import User
from services.audit_service import record_audit
from services.base import BaseService


def normalize_roles(roles: Sequence[Role]) -> list[str]:
    """Deduplicate while keeping the caller's order."""
    seen: list[str] = []
    for role in roles:
        value = role.value if isinstance(role, Role) else str(role)
        if value not in seen:
            seen.append(value)
    return seen


class UserService(BaseService[User]):
    """Admin operations on users."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_or_404(self, user_id: str) -> User:
        user = await self.get_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def set_roles(self, user_id: str, roles: Sequence[Role], actor_id: str) -> User:
        """Replace a user's roles. An empty list is allowed."""
        user = await self.get_or_404(user_id)
        old = list(user.roles or [])
        new = normalize_roles(roles)
        # Assign a new list so the JSON column is marked dirty
        user.roles = new
        await self.db.flush()
        await record_audit(
            self.db, actor_id, AuditAction.USER_ROLES_UPDATED, "user", user.id,
            old_values={"roles": old}, new_values={"roles": new},
        )
        return user

    # ─── Sellers ───────────────────────────────────────────

    async def list_sellers(
        self,
        status: Optional[SellerVerificationStatus] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[tuple[User, Optional[SellerVerification]]], int]:
        """Developers with their verification record, newest first.

        A developer without a verification row counts as PENDING.
        """
        # roles is a JSON list; match the quoted role name in its text form
        conditions = [
            User.is_deleted == False,  # noqa: E712
            cast(User.roles, String).like(f'%"{Role.DEVELOPER.value}"%'),
        ]
        if status is not None:
            effective_status = func.coalesce(SellerVerification.status, SellerVerificationStatus.PENDING.value)
            conditions.append(effective_status == status.value)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(User.email.ilike(pattern), User.name.ilike(pattern)))

        base = (
            select(User, SellerVerification)
            .outerjoin(SellerVerification, SellerVerification.user_id == User.id)
            .where(*conditions)
        )
        result = await self.db.execute(
            base.order_by(User.created_at.desc()).offset(offset).limit(limit)
        )
        total = await self.db.scalar(
            select(func.count(User.id))
            .select_from(User)
            .outerjoin(SellerVerification, SellerVerification.user_id == User.id)
            .where(*conditions)
        )
        return [(user, verification) for user, verification in result.all()], total or 0

    async def review_seller(
        self,
        user_id: str,
        approve: bool,
        actor_id: str,
        notes: Optional[str] = None,
    ) -> SellerVerification:
        """Approve or reject a developer's seller verification."""
        user = await self.get_or_404(user_id)
        if Role.DEVELOPER.value not in (user.roles or []):
            raise NotFound("Seller not found")

        result = await self.db.execute(
            select(SellerVerification).where(SellerVerification.user_id == user.id)
        )
        verification = result.scalar_one_or_none()
        if verification is None:
            verification = SellerVerification(user_id=user.id)
            self.db.add(verification)

        old_status = verification.status
        verification.status = (
            SellerVerificationStatus.APPROVED.value if approve
            else SellerVerificationStatus.REJECTED.value
        )
        verification.notes = notes
        verification.reviewed_by_id = actor_id
        verification.reviewed_at = datetime.now(timezone.utc)
        await self.db.flush()

        await record_audit(
            self.db, actor_id,
            AuditAction.SELLER_APPROVED if approve else AuditAction.SELLER_REJECTED,
            "seller", user.id,
            old_values={"status": old_status}, new_values={"status": verification.status, "notes": notes},
        )
        return verification

    async def is_verified_seller(self, user_id: str) -> bool:
        result = await self.db.execute(
            select(func.count()).select_from(SellerVerification).where(
                SellerVerification.user_id == user_id,
                SellerVerification.status == SellerVerificationStatus.APPROVED.value,
            )
        )
        return (result.scalar() or 0) > 0

"""Database seed script: creates an admin, a verified demo seller and a sample listing.

Run: python -m scripts.seed
"""

import asyncio
import sys
import os
from datetime import datetime, timezone
from decimal import Decimal

# Ensure backend root is in path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def _get_or_create_user(db, email, password, name, roles):
    from sqlalchemy import select
    from db.models.user import User
    from core.security import hash_password

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        print(f"[seed] User exists: {email}")
        return user, False

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        roles=roles,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    print(f"[seed] Created user: {email} roles={roles}")
    return user, True


async def seed():
    """Seed the database with default data."""
    from sqlalchemy import select
    from db.database import init_db
    from db.database import AsyncSessionLocal
    from db.models.seller_verification import SellerVerification
    from db.models.tag import Tag
    from db.models.workflow import Workflow
    from core.constants import Role, SellerVerificationStatus, WorkflowStatus

    await init_db()

    async with AsyncSessionLocal() as db:
        # 1. Admin
        admin_email = os.environ.get("ADMIN_EMAIL", "admin@marketplace.example.com")
        admin_password = os.environ.get("ADMIN_PASSWORD", "admin123!")
        admin, created = await _get_or_create_user(
            db, admin_email, admin_password, "Admin", [Role.ADMIN.value, Role.BUYER.value]
        )
        if created:
            print(f"[seed] Admin password: {admin_password}")

        # 2. Demo seller, already verified
        seller, created = await _get_or_create_user(
            db,
            os.environ.get("SELLER_EMAIL", "seller@marketplace.example.com"),
            os.environ.get("SELLER_PASSWORD", "seller123!"),
            "Demo Seller",
            [Role.DEVELOPER.value, Role.BUYER.value],
        )
        if created:
            db.add(
                SellerVerification(
                    user_id=seller.id,
                    status=SellerVerificationStatus.APPROVED.value,
                    reviewed_by_id=admin.id,
                    reviewed_at=datetime.now(timezone.utc),
                    notes="Seeded",
                )
            )

        # 3. Tags
        tags = {}
        for name in ("email", "crm", "reporting", "scraping"):
            result = await db.execute(select(Tag).where(Tag.name == name))
            tag = result.scalar_one_or_none()
            if not tag:
                tag = Tag(name=name)
                db.add(tag)
            tags[name] = tag
        await db.flush()
        print(f"[seed] {len(tags)} tags ready")

        # 4. Sample approved listing
        result = await db.execute(
            select(Workflow).where(Workflow.user_id == seller.id, Workflow.name == "Invoice Mailer")
        )
        if result.scalar_one_or_none() is None:
            workflow = Workflow(
                user_id=seller.id,
                name="Invoice Mailer",
                description="Sends monthly invoices from a spreadsheet to each customer.",
                price=Decimal("29.99"),
                file_url="https://example.com/workflows/invoice-mailer.json",
                status=WorkflowStatus.APPROVED.value,
                is_public=True,
                is_featured=True,
                prerequisites="An SMTP account",
            )
            workflow.tags = [tags["email"], tags["reporting"]]
            db.add(workflow)
            print("[seed] Created sample workflow: Invoice Mailer")

        await db.commit()
        print("[seed] Database seeded successfully!")


if __name__ == "__main__":
    asyncio.run(seed())

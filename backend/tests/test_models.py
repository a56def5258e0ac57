"""Tests for storage-level constraints on the marketplace models."""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InvalidRequestError

from core.constants import EarningsStatus, PurchaseStatus
from db.models.earnings import Earnings
from db.models.purchase import Purchase
from db.models.review import Review
from db.models.workflow import Workflow


@pytest.mark.integration
class TestConstraints:

    async def test_one_review_per_workflow_and_user(self, db_session, workflow, buyer):
        db_session.add(Review(workflow_id=workflow.id, user_id=buyer.id, rating=5))
        await db_session.commit()

        db_session.add(Review(workflow_id=workflow.id, user_id=buyer.id, rating=1))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_range_is_checked(self, db_session, workflow, buyer, rating):
        db_session.add(Review(workflow_id=workflow.id, user_id=buyer.id, rating=rating))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_external_transaction_id_is_unique(self, db_session, workflow, buyer, make_purchase):
        await make_purchase(workflow, buyer, session_id="cs_test_same")

        db_session.add(Purchase(
            workflow_id=workflow.id, buyer_id=buyer.id, amount=Decimal("1.00"),
            status=PurchaseStatus.PENDING.value, external_transaction_id="cs_test_same",
        ))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_purchases_without_external_id_may_coexist(self, db_session, workflow, buyer):
        for _ in range(2):
            db_session.add(Purchase(
                workflow_id=workflow.id, buyer_id=buyer.id, amount=Decimal("1.00"),
                status=PurchaseStatus.PENDING.value,
            ))
        await db_session.commit()

    async def test_one_earnings_row_per_purchase(self, db_session, developer, completed_purchase):
        for _ in range(2):
            db_session.add(Earnings(
                purchase_id=completed_purchase.id, developer_id=developer.id,
                amount=Decimal("20.993"), status=EarningsStatus.PENDING.value,
            ))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()


@pytest.mark.integration
class TestWorkflowModel:

    async def test_money_keeps_its_scale(self, db_session, workflow):
        price = await db_session.scalar(select(Workflow.price).where(Workflow.id == workflow.id))
        assert price == Decimal("29.99")

    async def test_soft_delete_and_restore(self, db_session, workflow):
        workflow.soft_delete()
        await db_session.commit()
        assert workflow.is_deleted is True
        assert workflow.deleted_at is not None

        workflow.restore()
        await db_session.commit()
        assert workflow.deleted_at is None

    async def test_tag_names_are_sorted(self, make_workflow):
        listing = await make_workflow(tags=("zapier", "email"))
        assert listing.tag_names == ["email", "zapier"]


@pytest.mark.integration
class TestRelationshipLoading:

    async def test_unloaded_relationships_raise_instead_of_returning_none(
        self, session_factory, workflow, buyer
    ):
        async with session_factory() as session:
            session.add(Review(workflow_id=workflow.id, user_id=buyer.id, rating=4))
            await session.commit()

        async with session_factory() as session:
            review = await session.scalar(select(Review).where(Review.workflow_id == workflow.id))
            listing = await session.scalar(select(Workflow).where(Workflow.id == workflow.id))

            assert review.user.id == buyer.id
            with pytest.raises(InvalidRequestError):
                review.workflow
            with pytest.raises(InvalidRequestError):
                listing.reviews

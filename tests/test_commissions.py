from datetime import date
from decimal import Decimal

import pytest

from components.commission.repository import CommissionRepository
from components.commission.schemas import (
    ApprovalStatus,
    CommissionCreate,
    CommissionStatus,
    SplitShare,
)
from components.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


@pytest.fixture
async def commission(session, deal, agent):
    return await CommissionRepository(session).create(CommissionCreate(
        deal_id=deal.id, property_id=deal.property_id, agent_id=agent.id, amount=1000,
    ))


def _shares(*pairs):
    return [SplitShare(agent_id=agent_id, percentage=percentage) for agent_id, percentage in pairs]


class TestCommissionWorkflow:
    """Tests for approve, reject, override and pay."""

    async def test_created_pending(self, commission, agent):
        assert commission.status == CommissionStatus.PENDING.value
        assert commission.approval_status == ApprovalStatus.PENDING_APPROVAL.value
        assert commission.agent_name == "Ali Khan"
        assert commission.amount == Decimal("1000.00")

    async def test_unknown_agent(self, session):
        with pytest.raises(NotFoundError):
            await CommissionRepository(session).create(CommissionCreate(
                property_id="PROP-1", agent_id=999, amount=10,
            ))

    async def test_approve(self, session, commission, admin):
        approved = await CommissionRepository(session).approve(commission.id, admin)
        assert approved.approval_status == ApprovalStatus.APPROVED.value
        assert approved.approved_by == admin.id
        assert approved.approved_at is not None

    async def test_agent_cannot_approve(self, session, commission, agent):
        with pytest.raises(PermissionDeniedError):
            await CommissionRepository(session).approve(commission.id, agent)

    async def test_approve_twice(self, session, commission, admin):
        repo = CommissionRepository(session)
        await repo.approve(commission.id, admin)
        with pytest.raises(InvalidStateError, match="already been approved"):
            await repo.approve(commission.id, admin)

    async def test_reject_requires_reason(self, session, commission, admin):
        with pytest.raises(ValidationError, match="Please provide a rejection reason"):
            await CommissionRepository(session).reject(commission.id, "  ", admin)

    async def test_reject(self, session, commission, admin):
        repo = CommissionRepository(session)
        rejected = await repo.reject(commission.id, "Deal fell through", admin)
        assert rejected.approval_status == ApprovalStatus.REJECTED.value
        assert rejected.rejection_reason == "Deal fell through"
        with pytest.raises(InvalidStateError):
            await repo.mark_paid(commission.id, admin)

    async def test_override_keeps_original(self, session, commission, admin):
        overridden = await CommissionRepository(session).override(
            commission.id, 800, "Shared listing fee", admin
        )
        assert overridden.amount == Decimal("800.00")
        assert overridden.original_amount == Decimal("1000.00")
        assert overridden.override_reason == "Shared listing fee"
        assert overridden.approval_status == ApprovalStatus.APPROVED.value

    async def test_override_validation(self, session, commission, admin):
        repo = CommissionRepository(session)
        with pytest.raises(ValidationError):
            await repo.override(commission.id, 800, "", admin)
        with pytest.raises(ValidationError):
            await repo.override(commission.id, 0, "Zero", admin)

    @pytest.mark.parametrize("amount", [float("nan"), float("inf")])
    async def test_override_rejects_non_finite_amount(self, session, commission, admin, amount):
        with pytest.raises(ValidationError, match="finite"):
            await CommissionRepository(session).override(commission.id, amount, "Typo", admin)
        assert commission.amount == Decimal("1000.00")

    async def test_pay_requires_approval(self, session, commission, admin):
        with pytest.raises(InvalidStateError, match="Only approved commissions can be paid"):
            await CommissionRepository(session).mark_paid(commission.id, admin)

    async def test_pay(self, session, commission, admin):
        repo = CommissionRepository(session)
        await repo.approve(commission.id, admin)
        paid = await repo.mark_paid(commission.id, admin, date(2024, 5, 1))
        assert paid.status == CommissionStatus.PAID.value
        assert paid.paid_date == date(2024, 5, 1)

    async def test_paid_commission_is_frozen(self, session, commission, admin, other_agent):
        repo = CommissionRepository(session)
        await repo.approve(commission.id, admin)
        await repo.mark_paid(commission.id, admin)

        message = "Commission is already paid and can't be changed"
        with pytest.raises(InvalidStateError, match=message):
            await repo.approve(commission.id, admin)
        with pytest.raises(InvalidStateError, match=message):
            await repo.reject(commission.id, "Late", admin)
        with pytest.raises(InvalidStateError, match=message):
            await repo.override(commission.id, 10, "Late", admin)
        with pytest.raises(InvalidStateError, match=message):
            await repo.mark_paid(commission.id, admin)
        with pytest.raises(InvalidStateError, match=message):
            await repo.split(commission.id, _shares((admin.id, 50), (other_agent.id, 50)), admin)

    async def test_filters(self, session, commission, admin, agent):
        repo = CommissionRepository(session)
        await repo.approve(commission.id, admin)
        assert await repo.get_all(approval_status=ApprovalStatus.PENDING_APPROVAL) == []
        assert len(await repo.get_all(approval_status=ApprovalStatus.APPROVED, agent_id=agent.id)) == 1
        assert len(await repo.get_all(status=CommissionStatus.PENDING)) == 1


class TestCommissionSplit:
    """Tests for CommissionRepository.split()."""

    async def test_split_amounts_sum_to_parent(self, session, commission, admin, agent, other_agent):
        children = await CommissionRepository(session).split(
            commission.id, _shares((agent.id, 33.33), (other_agent.id, 33.33), (admin.id, 33.34)), admin
        )
        assert [child.amount for child in children] == [
            Decimal("333.30"), Decimal("333.30"), Decimal("333.40"),
        ]
        assert sum(child.amount for child in children) == commission.amount
        assert all(child.parent_id == commission.id for child in children)
        assert commission.is_split

    async def test_agent_can_split_own_commission(self, session, commission, agent, other_agent):
        children = await CommissionRepository(session).split(
            commission.id, _shares((agent.id, 60), (other_agent.id, 40)), agent
        )
        assert [child.agent_name for child in children] == ["Ali Khan", "Sara Ahmed"]
        assert [child.amount for child in children] == [Decimal("600.00"), Decimal("400.00")]

    async def test_other_agent_cannot_split(self, session, commission, agent, other_agent):
        with pytest.raises(PermissionDeniedError):
            await CommissionRepository(session).split(
                commission.id, _shares((agent.id, 50), (other_agent.id, 50)), other_agent
            )

    async def test_children_inherit_approval(self, session, commission, admin, agent, other_agent):
        repo = CommissionRepository(session)
        await repo.approve(commission.id, admin)
        children = await repo.split(commission.id, _shares((agent.id, 50), (other_agent.id, 50)), admin)
        assert all(child.approval_status == ApprovalStatus.APPROVED.value for child in children)
        paid = await repo.mark_paid(children[0].id, admin)
        assert paid.status == CommissionStatus.PAID.value

    @pytest.mark.parametrize("percentages,message", [
        ((50, 49.99), "Total percentage must equal 100%"),
        ((60, 60), "Total percentage must equal 100%"),
        ((0, 100), "Percentage must be between 0 and 100"),
        ((-10, 110), "Percentage must be between 0 and 100"),
    ])
    async def test_percentage_validation(
        self, session, commission, admin, agent, other_agent, percentages, message
    ):
        shares = _shares((agent.id, percentages[0]), (other_agent.id, percentages[1]))
        with pytest.raises(ValidationError, match=message):
            await CommissionRepository(session).split(commission.id, shares, admin)
        assert not commission.is_split

    async def test_duplicate_agents(self, session, commission, admin, agent):
        with pytest.raises(ValidationError, match="Same agent cannot appear multiple times"):
            await CommissionRepository(session).split(
                commission.id, _shares((agent.id, 50), (agent.id, 50)), admin
            )

    async def test_percentages_limited_to_two_decimals(self, session, commission, admin, agent, other_agent):
        """Shares like 33.333 add up to 100 but can't be stored exactly."""
        shares = _shares((agent.id, 33.333), (other_agent.id, 33.333), (admin.id, 33.334))
        with pytest.raises(ValidationError, match="at most 2 decimal places"):
            await CommissionRepository(session).split(commission.id, shares, admin)
        assert not commission.is_split

    async def test_share_count(self, session, commission, admin, agent):
        with pytest.raises(ValidationError, match="2 to 5 agents"):
            await CommissionRepository(session).split(commission.id, _shares((agent.id, 100)), admin)

    async def test_split_parent_is_frozen(self, session, commission, admin, agent, other_agent):
        repo = CommissionRepository(session)
        await repo.split(commission.id, _shares((agent.id, 50), (other_agent.id, 50)), admin)
        with pytest.raises(InvalidStateError, match="has been split"):
            await repo.approve(commission.id, admin)

    async def test_report_counts_children_not_parent(self, session, commission, admin, agent, other_agent):
        repo = CommissionRepository(session)
        await repo.approve(commission.id, admin)
        await repo.split(commission.id, _shares((agent.id, 70), (other_agent.id, 30)), admin)

        report = {row.agent_id: row for row in await repo.agent_report()}
        assert report[agent.id].commission_count == 1
        assert report[agent.id].approved_amount == 700
        assert report[other_agent.id].total_amount == 300

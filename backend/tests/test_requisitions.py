"""Tests for the requisition workflow: create, edit, submit, multi-level approval,
reject, cancel, receipts, listing, and concurrency guards.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import select, update
from sqlmodel import col

from schoolops.exceptions import ConflictError
from schoolops.models.requisition import Requisition, RequisitionApproval
from schoolops.services.requisition import _write_requisition

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from schoolops.models.tenant import Tenant

REQUESTER_ID = uuid.uuid4()
BURSAR_ID = uuid.uuid4()
HEAD_TEACHER_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()


def _headers(tenant: Tenant, user_id: uuid.UUID, role: str) -> dict[str, str]:
    return {"X-Tenant-Id": str(tenant.id), "X-User-Id": str(user_id), "X-Role": role}


def _url(tenant: Tenant, suffix: str = "") -> str:
    return f"/tenants/{tenant.id}/requisitions{suffix}"


def _create_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "requisition_type": "purchase_request",
        "requester_name": "Grace Namutebi",
        "department": "Science",
        "purpose": "Lab reagents for term two practicals",
        "amount_requested": "500000",
        "urgency": "high",
        "expense_category": "Supplies",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def requester(tenant: Tenant) -> dict[str, str]:
    return _headers(tenant, REQUESTER_ID, "staff")


@pytest.fixture
def bursar(tenant: Tenant) -> dict[str, str]:
    return _headers(tenant, BURSAR_ID, "bursar")


@pytest.fixture
def head_teacher(tenant: Tenant) -> dict[str, str]:
    return _headers(tenant, HEAD_TEACHER_ID, "head_teacher")


@pytest.fixture
def admin(tenant: Tenant) -> dict[str, str]:
    return _headers(tenant, ADMIN_ID, "admin")


async def _create(client: AsyncClient, tenant: Tenant, headers: dict[str, str], **overrides: Any) -> dict[str, Any]:
    resp = await client.post(_url(tenant), json=_create_payload(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _create_and_submit(
    client: AsyncClient, tenant: Tenant, headers: dict[str, str], **overrides: Any
) -> dict[str, Any]:
    created = await _create(client, tenant, headers, **overrides)
    resp = await client.post(_url(tenant, f"/{created['id']}/submit"), headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Create / edit
# ---------------------------------------------------------------------------


async def test_create_draft(async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]) -> None:
    data = await _create(async_client, tenant, requester)
    assert data["status"] == "draft"
    assert data["requisition_number"] == "REQ-00001"
    assert data["requester_id"] == str(REQUESTER_ID)
    assert data["currency"] == "UGX"
    assert data["current_approval_level"] == 0
    assert data["amount_approved"] is None
    assert Decimal(data["amount_requested"]) == Decimal("500000")


async def test_sequence_numbers_increase_per_tenant(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]
) -> None:
    await _create(async_client, tenant, requester)
    second = await _create(async_client, tenant, requester)
    assert second["requisition_number"] == "REQ-00002"


async def test_create_validates_payload(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]
) -> None:
    resp = await async_client.post(_url(tenant), json=_create_payload(amount_requested="0"), headers=requester)
    assert resp.status_code == 422
    assert resp.json()["error"]


async def test_tenant_mismatch_is_forbidden(async_client: AsyncClient, tenant: Tenant) -> None:
    other = {"X-Tenant-Id": str(uuid.uuid4()), "X-User-Id": str(REQUESTER_ID), "X-Role": "admin"}
    resp = await async_client.get(_url(tenant), headers=other)
    assert resp.status_code == 403


async def test_edit_draft(async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]) -> None:
    created = await _create(async_client, tenant, requester)
    resp = await async_client.patch(
        _url(tenant, f"/{created['id']}"),
        json={"amount_requested": "450000", "notes": "Revised quote"},
        headers=requester,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert Decimal(data["amount_requested"]) == Decimal("450000")
    assert data["notes"] == "Revised quote"
    assert data["status"] == "draft"


async def test_edit_cannot_clear_required_field(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]
) -> None:
    created = await _create(async_client, tenant, requester)
    resp = await async_client.patch(_url(tenant, f"/{created['id']}"), json={"purpose": None}, headers=requester)
    assert resp.status_code == 400


async def test_edit_by_other_staff_is_forbidden(async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]) -> None:
    created = await _create(async_client, tenant, requester)
    stranger = _headers(tenant, uuid.uuid4(), "staff")
    resp = await async_client.patch(_url(tenant, f"/{created['id']}"), json={"notes": "x"}, headers=stranger)
    assert resp.status_code == 403


async def test_edit_after_submit_is_refused(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    resp = await async_client.patch(_url(tenant, f"/{submitted['id']}"), json={"notes": "late"}, headers=requester)
    assert resp.status_code == 409


# ---------------------------------------------------------------------------
# Submit / approve
# ---------------------------------------------------------------------------


async def test_submit_creates_pending_row_per_level(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    assert submitted["status"] == "pending_level1"
    assert submitted["current_approval_level"] == 1
    assert submitted["max_approval_levels"] == 2

    resp = await async_client.get(_url(tenant, f"/{submitted['id']}/approvals"), headers=requester)
    approvals = resp.json()
    assert [a["approval_level"] for a in approvals] == [1, 2]
    assert [a["approver_role"] for a in approvals] == ["bursar", "head_teacher"]
    assert [a["approver_role_label"] for a in approvals] == ["Bursar", "Head Teacher"]
    assert all(a["status"] == "pending" for a in approvals)


async def test_two_level_approval_with_reduction_ends_partially_approved(
    async_client: AsyncClient,
    tenant: Tenant,
    requester: dict[str, str],
    bursar: dict[str, str],
    head_teacher: dict[str, str],
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    req_id = submitted["id"]

    resp = await async_client.post(_url(tenant, f"/{req_id}/approve"), json={}, headers=bursar)
    assert resp.status_code == 200, resp.text
    level1 = resp.json()
    assert level1["status"] == "pending_level2"
    assert level1["current_approval_level"] == 2
    assert Decimal(level1["amount_approved"]) == Decimal("500000")

    resp = await async_client.post(
        _url(tenant, f"/{req_id}/approve"),
        json={"amount_approved": "400000", "comments": "Reduced to budget"},
        headers=head_teacher,
    )
    assert resp.status_code == 200, resp.text
    final = resp.json()
    assert final["status"] == "partially_approved"
    assert Decimal(final["amount_approved"]) == Decimal("400000")

    approvals = (await async_client.get(_url(tenant, f"/{req_id}/approvals"), headers=requester)).json()
    assert [a["status"] for a in approvals] == ["approved", "approved"]
    assert approvals[0]["approver_id"] == str(BURSAR_ID)
    assert approvals[1]["comments"] == "Reduced to budget"
    assert Decimal(approvals[1]["amount_approved"]) == Decimal("400000")


async def test_full_amount_at_final_level_is_approved(
    async_client: AsyncClient,
    tenant: Tenant,
    requester: dict[str, str],
    bursar: dict[str, str],
    head_teacher: dict[str, str],
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    await async_client.post(_url(tenant, f"/{submitted['id']}/approve"), headers=bursar)
    resp = await async_client.post(_url(tenant, f"/{submitted['id']}/approve"), headers=head_teacher)
    assert resp.json()["status"] == "approved"
    assert Decimal(resp.json()["amount_approved"]) == Decimal("500000")


async def test_wrong_role_cannot_approve(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], head_teacher: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    resp = await async_client.post(_url(tenant, f"/{submitted['id']}/approve"), headers=head_teacher)
    assert resp.status_code == 403

    current = (await async_client.get(_url(tenant, f"/{submitted['id']}"), headers=requester)).json()
    assert current["status"] == "pending_level1"


async def test_wrong_role_is_refused_before_amount_is_checked(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], head_teacher: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    resp = await async_client.post(
        _url(tenant, f"/{submitted['id']}/approve"),
        json={"amount_approved": "900000"},
        headers=head_teacher,
    )
    assert resp.status_code == 403


async def test_admin_can_approve_any_level(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], admin: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    resp = await async_client.post(_url(tenant, f"/{submitted['id']}/approve"), headers=admin)
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending_level2"


async def test_approved_amount_cannot_exceed_request(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], bursar: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    resp = await async_client.post(
        _url(tenant, f"/{submitted['id']}/approve"), json={"amount_approved": "600000"}, headers=bursar
    )
    assert resp.status_code == 400


async def test_stale_approval_id_is_a_conflict(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], admin: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    req_id = submitted["id"]
    approvals = (await async_client.get(_url(tenant, f"/{req_id}/approvals"), headers=requester)).json()
    level1_id = approvals[0]["id"]

    first = await async_client.post(_url(tenant, f"/{req_id}/approve"), json={"approval_id": level1_id}, headers=admin)
    assert first.status_code == 200

    stale = await async_client.post(_url(tenant, f"/{req_id}/approve"), json={"approval_id": level1_id}, headers=admin)
    assert stale.status_code == 409

    current = (await async_client.get(_url(tenant, f"/{req_id}"), headers=requester)).json()
    assert current["status"] == "pending_level2"
    assert current["current_approval_level"] == 2


async def test_concurrent_write_is_detected_by_version(
    async_client: AsyncClient, db_session: AsyncSession, tenant: Tenant, requester: dict[str, str]
) -> None:
    created = await _create(async_client, tenant, requester)
    result = await db_session.execute(select(Requisition).where(col(Requisition.id) == uuid.UUID(created["id"])))
    stale = result.scalar_one()

    await db_session.execute(
        update(Requisition)
        .where(col(Requisition.id) == stale.id)
        .values(version=stale.version + 1)
        .execution_options(synchronize_session=False)
    )
    with pytest.raises(ConflictError):
        await _write_requisition(db_session, stale, notes="lost update")
    await db_session.rollback()


# ---------------------------------------------------------------------------
# Terminal states
# ---------------------------------------------------------------------------


async def test_terminal_state_refuses_further_transitions(
    async_client: AsyncClient,
    tenant: Tenant,
    requester: dict[str, str],
    bursar: dict[str, str],
    head_teacher: dict[str, str],
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    req_id = submitted["id"]
    await async_client.post(_url(tenant, f"/{req_id}/approve"), headers=bursar)
    await async_client.post(_url(tenant, f"/{req_id}/approve"), headers=head_teacher)

    assert (await async_client.post(_url(tenant, f"/{req_id}/approve"), headers=head_teacher)).status_code == 409
    assert (
        await async_client.post(_url(tenant, f"/{req_id}/reject"), json={"reason": "Too late"}, headers=head_teacher)
    ).status_code == 409
    assert (await async_client.post(_url(tenant, f"/{req_id}/cancel"), headers=requester)).status_code == 409
    assert (await async_client.post(_url(tenant, f"/{req_id}/submit"), headers=requester)).status_code == 409

    current = (await async_client.get(_url(tenant, f"/{req_id}"), headers=requester)).json()
    assert current["status"] == "approved"
    assert current["current_approval_level"] == 2


# ---------------------------------------------------------------------------
# Reject / cancel / receipt
# ---------------------------------------------------------------------------


async def test_reject_at_second_level(
    async_client: AsyncClient,
    tenant: Tenant,
    requester: dict[str, str],
    bursar: dict[str, str],
    head_teacher: dict[str, str],
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    req_id = submitted["id"]
    await async_client.post(_url(tenant, f"/{req_id}/approve"), headers=bursar)

    resp = await async_client.post(
        _url(tenant, f"/{req_id}/reject"), json={"reason": "Not in this term's budget"}, headers=head_teacher
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["status"] == "rejected"
    assert data["rejection_reason"] == "Not in this term's budget"

    approvals = (await async_client.get(_url(tenant, f"/{req_id}/approvals"), headers=requester)).json()
    assert [a["status"] for a in approvals] == ["approved", "rejected"]


async def test_reject_requires_reason(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], bursar: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    resp = await async_client.post(_url(tenant, f"/{submitted['id']}/reject"), json={"reason": "  "}, headers=bursar)
    assert resp.status_code == 422


async def test_cancel_pending_by_requester(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    resp = await async_client.post(
        _url(tenant, f"/{submitted['id']}/cancel"), json={"reason": "Bought elsewhere"}, headers=requester
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["cancelled_reason"] == "Bought elsewhere"


async def test_receipt_after_approval(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], admin: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    req_id = submitted["id"]

    early = await async_client.post(
        _url(tenant, f"/{req_id}/receipt"), json={"receipt_urls": ["https://files.test/r1.pdf"]}, headers=requester
    )
    assert early.status_code == 409

    await async_client.post(_url(tenant, f"/{req_id}/approve"), headers=admin)
    await async_client.post(_url(tenant, f"/{req_id}/approve"), headers=admin)
    resp = await async_client.post(
        _url(tenant, f"/{req_id}/receipt"), json={"receipt_urls": ["https://files.test/r1.pdf"]}, headers=requester
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["receipt_submitted"] is True
    assert resp.json()["receipt_urls"] == ["https://files.test/r1.pdf"]


# ---------------------------------------------------------------------------
# Settings-driven behaviour
# ---------------------------------------------------------------------------


async def test_auto_approve_below_threshold(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], admin: dict[str, str]
) -> None:
    resp = await async_client.put(
        f"/tenants/{tenant.id}/requisition-settings",
        json={"approval_levels": 1, "level1_role": "bursar", "level1_label": "Bursar", "auto_approve_below": "100000"},
        headers=admin,
    )
    assert resp.status_code == 200, resp.text

    submitted = await _create_and_submit(async_client, tenant, requester, amount_requested="20000")
    assert submitted["status"] == "approved"
    assert Decimal(submitted["amount_approved"]) == Decimal("20000")

    approvals = (await async_client.get(_url(tenant, f"/{submitted['id']}/approvals"), headers=requester)).json()
    assert len(approvals) == 1
    assert approvals[0]["status"] == "approved"

    activity = (await async_client.get(_url(tenant, f"/{submitted['id']}/activity"), headers=requester)).json()
    assert "auto_approved" in {a["action"] for a in activity}


async def test_three_level_chain(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], admin: dict[str, str]
) -> None:
    await async_client.put(
        f"/tenants/{tenant.id}/requisition-settings",
        json={
            "approval_levels": 3,
            "level1_role": "hod",
            "level1_label": "HOD",
            "level2_role": "bursar",
            "level2_label": "Bursar",
            "level3_role": "director",
            "level3_label": "Director",
        },
        headers=admin,
    )
    submitted = await _create_and_submit(async_client, tenant, requester)
    assert submitted["max_approval_levels"] == 3

    hod = _headers(tenant, uuid.uuid4(), "hod")
    director = _headers(tenant, uuid.uuid4(), "director")
    await async_client.post(_url(tenant, f"/{submitted['id']}/approve"), headers=hod)
    await async_client.post(_url(tenant, f"/{submitted['id']}/approve"), headers=_headers(tenant, BURSAR_ID, "bursar"))
    resp = await async_client.post(_url(tenant, f"/{submitted['id']}/approve"), headers=director)
    assert resp.json()["status"] == "approved"


async def test_cash_advance_limit(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], admin: dict[str, str]
) -> None:
    await async_client.put(
        f"/tenants/{tenant.id}/requisition-settings",
        json={"max_advance_amount": "100000"},
        headers=admin,
    )
    resp = await async_client.post(
        _url(tenant),
        json=_create_payload(requisition_type="cash_advance", amount_requested="150000"),
        headers=requester,
    )
    assert resp.status_code == 400

    ok = await _create(async_client, tenant, requester, requisition_type="reimbursement", amount_requested="150000")
    assert ok["status"] == "draft"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def test_list_filters_and_search(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]
) -> None:
    await _create(async_client, tenant, requester, purpose="Football kits for sports day")
    await _create_and_submit(async_client, tenant, requester, purpose="Chalk and markers for P4")

    everything = (await async_client.get(_url(tenant), headers=requester)).json()
    assert everything["total"] == 2

    pending = (await async_client.get(_url(tenant), params={"group": "pending"}, headers=requester)).json()
    assert pending["total"] == 1
    assert pending["items"][0]["status"] == "pending_level1"

    drafts = (await async_client.get(_url(tenant), params={"status": "draft"}, headers=requester)).json()
    assert drafts["total"] == 1

    found = (await async_client.get(_url(tenant), params={"q": "football"}, headers=requester)).json()
    assert found["total"] == 1
    assert found["items"][0]["purpose"] == "Football kits for sports day"


async def test_stats(async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]) -> None:
    await _create(async_client, tenant, requester, amount_requested="1000")
    await _create_and_submit(async_client, tenant, requester, amount_requested="2500")

    stats = (await async_client.get(_url(tenant, "/stats"), headers=requester)).json()
    assert stats["total"] == 2
    assert stats["pending"] == 1
    assert stats["approved"] == 0
    assert Decimal(stats["total_amount"]) == Decimal("3500")


async def test_activity_trail(
    async_client: AsyncClient, tenant: Tenant, requester: dict[str, str], bursar: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    await async_client.post(_url(tenant, f"/{submitted['id']}/approve"), json={"comments": "OK"}, headers=bursar)

    activity = (await async_client.get(_url(tenant, f"/{submitted['id']}/activity"), headers=requester)).json()
    assert {a["action"] for a in activity} == {"created", "submitted", "approved"}
    approved = next(a for a in activity if a["action"] == "approved")
    assert approved["details"] == "OK"
    assert approved["metadata"]["level"] == 1


async def test_unknown_requisition_is_404(async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]) -> None:
    resp = await async_client.get(_url(tenant, f"/{uuid.uuid4()}"), headers=requester)
    assert resp.status_code == 404
    assert resp.json()["status_code"] == 404


async def test_approval_rows_are_not_duplicated(
    db_session: AsyncSession, async_client: AsyncClient, tenant: Tenant, requester: dict[str, str]
) -> None:
    submitted = await _create_and_submit(async_client, tenant, requester)
    resubmit = await async_client.post(_url(tenant, f"/{submitted['id']}/submit"), headers=requester)
    assert resubmit.status_code == 409

    result = await db_session.execute(
        select(RequisitionApproval).where(col(RequisitionApproval.requisition_id) == uuid.UUID(submitted["id"]))
    )
    assert len(result.scalars().all()) == 2

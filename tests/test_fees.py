from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient

from conftest import ADMIN_ID, create_grade, enroll


async def _student(client: AsyncClient, headers) -> dict:
    grade = await create_grade(client, headers)
    return await enroll(client, headers, grade["id"], grade["classrooms"][0]["id"], 1)


async def _fee(client: AsyncClient, headers, student_id: str, amount: str = "5000", **extra) -> dict:
    response = await client.post(
        "/api/v1/fees",
        json={"student_id": student_id, "amount": amount, "billing_type": "term", **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_pay_defaults_to_cash_and_mints_receipt(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    fee = await _fee(client, admin_headers, student["id"], description="Term 1 tuition", term="Term 1")
    assert fee["status"] == "outstanding"
    assert fee["receipt_no"] is None
    assert fee["year"] == date.today().year

    response = await client.put(f"/api/v1/fees/{fee['id']}/pay", headers=admin_headers)
    assert response.status_code == 200, response.text
    paid = response.json()
    assert paid["status"] == "paid"
    assert Decimal(paid["paid_amount"]) == Decimal("5000")
    assert Decimal(paid["balance"]) == Decimal("0")
    assert paid["payment_method"] == "cash"
    assert paid["paid_recorded_by"] == str(ADMIN_ID)
    assert paid["paid_date"] is not None
    assert paid["receipt_no"] == f"SEC-{date.today().year}-0001"


@pytest.mark.asyncio
async def test_pay_with_method(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    fee = await _fee(client, admin_headers, student["id"])
    response = await client.put(
        f"/api/v1/fees/{fee['id']}/pay", json={"payment_method": "mobile_money"}, headers=admin_headers
    )
    assert response.json()["payment_method"] == "mobile_money"

    bad = await _fee(client, admin_headers, student["id"])
    response = await client.put(
        f"/api/v1/fees/{bad['id']}/pay", json={"payment_method": "barter"}, headers=admin_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_double_payment_conflicts_and_keeps_receipt(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    fee = await _fee(client, admin_headers, student["id"])
    first = (await client.put(f"/api/v1/fees/{fee['id']}/pay", headers=admin_headers)).json()

    again = await client.put(
        f"/api/v1/fees/{fee['id']}/pay", json={"payment_method": "cheque"}, headers=admin_headers
    )
    assert again.status_code == 409
    assert again.json()["detail"] == "This fee has already been paid"

    listing = await client.get(f"/api/v1/fees/student/{student['id']}", headers=admin_headers)
    current = next(f for f in listing.json()["fees"] if f["id"] == fee["id"])
    assert current["receipt_no"] == first["receipt_no"]
    assert current["paid_amount"] == first["paid_amount"]
    assert current["payment_method"] == "cash"


@pytest.mark.asyncio
async def test_paid_fee_cannot_be_deleted(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    fee = await _fee(client, admin_headers, student["id"])
    await client.put(f"/api/v1/fees/{fee['id']}/pay", headers=admin_headers)

    response = await client.delete(f"/api/v1/fees/{fee['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete paid fee records"

    receipt = await client.get(f"/api/v1/fees/{fee['id']}/receipt", headers=admin_headers)
    assert receipt.status_code == 200
    assert receipt.json()["fee"]["status"] == "paid"


@pytest.mark.asyncio
async def test_outstanding_fee_can_be_deleted(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    fee = await _fee(client, admin_headers, student["id"])
    response = await client.delete(f"/api/v1/fees/{fee['id']}", headers=admin_headers)
    assert response.status_code == 204
    again = await client.delete(f"/api/v1/fees/{fee['id']}", headers=admin_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_receipts_follow_settlement_order(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    fees = [await _fee(client, admin_headers, student["id"], amount=str(1000 * i)) for i in range(1, 4)]

    receipts = []
    for fee in (fees[2], fees[0], fees[1]):
        response = await client.put(f"/api/v1/fees/{fee['id']}/pay", headers=admin_headers)
        receipts.append(response.json()["receipt_no"])

    year = date.today().year
    assert receipts == [f"SEC-{year}-0001", f"SEC-{year}-0002", f"SEC-{year}-0003"]
    assert len(set(receipts)) == 3


@pytest.mark.asyncio
async def test_receipt_requires_payment(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    fee = await _fee(client, admin_headers, student["id"])
    response = await client.get(f"/api/v1/fees/{fee['id']}/receipt", headers=admin_headers)
    assert response.status_code == 409

    await client.put(f"/api/v1/fees/{fee['id']}/pay", headers=admin_headers)
    receipt = (await client.get(f"/api/v1/fees/{fee['id']}/receipt", headers=admin_headers)).json()
    assert receipt["receipt_no"] == f"SEC-{date.today().year}-0001"
    assert receipt["grade_name"] == "Grade 1"
    assert receipt["classroom_name"] == "Grade 1-A"
    assert receipt["parent_full_name"] == "Parent 0001"


@pytest.mark.asyncio
async def test_list_fees_totals(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    paid = await _fee(client, admin_headers, student["id"], amount="2000")
    await _fee(client, admin_headers, student["id"], amount="3000")
    await client.put(f"/api/v1/fees/{paid['id']}/pay", headers=admin_headers)

    response = await client.get(f"/api/v1/fees?student_id={student['id']}", headers=admin_headers)
    data = response.json()
    # registration fee of 5000 is billed on enrollment
    assert data["count"] == 3
    assert Decimal(data["totals"]["outstanding"]) == Decimal("8000")
    assert Decimal(data["totals"]["paid"]) == Decimal("2000")
    assert Decimal(data["totals"]["total"]) == Decimal("10000")

    only_paid = await client.get("/api/v1/fees?status=paid", headers=admin_headers)
    assert only_paid.json()["count"] == 1


@pytest.mark.asyncio
async def test_fee_for_unknown_student(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/fees",
        json={"student_id": "44444444-4444-4444-4444-444444444444", "amount": "100", "billing_type": "once"},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_teacher_cannot_record_payment(client: AsyncClient, admin_headers, teacher_headers) -> None:
    student = await _student(client, admin_headers)
    fee = await _fee(client, admin_headers, student["id"])
    response = await client.put(f"/api/v1/fees/{fee['id']}/pay", headers=teacher_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Role 'teacher' is not authorized to update fees"

    readable = await client.get(f"/api/v1/fees/student/{student['id']}", headers=teacher_headers)
    assert readable.status_code == 200


@pytest.mark.asyncio
async def test_fee_summary_for_current_year(client: AsyncClient, admin_headers) -> None:
    student = await _student(client, admin_headers)
    paid = await _fee(client, admin_headers, student["id"], amount="2000")
    await client.put(f"/api/v1/fees/{paid['id']}/pay", headers=admin_headers)
    await _fee(client, admin_headers, student["id"], amount="3000")
    await _fee(client, admin_headers, student["id"], amount="1000", year=2020)

    response = await client.get("/api/v1/fees/summary", headers=admin_headers)
    assert response.status_code == 200, response.text
    data = response.json()
    summary = data["summary"]
    assert summary["year"] == date.today().year
    # registration fee (5000, outstanding) + 2000 paid + 3000 outstanding
    assert Decimal(summary["total_expected"]) == Decimal("10000")
    assert Decimal(summary["total_collected"]) == Decimal("2000")
    assert Decimal(summary["total_outstanding"]) == Decimal("8000")
    assert summary["collection_rate"] == 20.0

    outstanding = data["students_with_outstanding"]
    assert [Decimal(f["amount"]) for f in outstanding] == [Decimal("5000"), Decimal("3000")]
    assert outstanding[0]["grade_name"] == "Grade 1"
    assert outstanding[0]["student"]["full_name"] == student["full_name"]
    assert [f["id"] for f in data["recent_payments"]] == [paid["id"]]

    empty_year = await client.get("/api/v1/fees/summary?year=2001", headers=admin_headers)
    assert empty_year.json()["summary"]["collection_rate"] == 0.0
    assert empty_year.json()["students_with_outstanding"] == []

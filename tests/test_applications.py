import pytest
from decimal import Decimal

from jobapply.models import ApplicationBatch, Transaction, TransactionType, TransactionStatus, UserPlan

from tests.conftest import USER_ID, create_plan, create_user_plan, fetch_all, webhook_body

HEADER = "Job Title,Company,Job Link,Application Date,Status\n"
UPLOAD_URL = "/api/admin/applications/upload"


def applications_csv(count: int) -> bytes:
    lines = [
        f"Engineer {i},Company {i},https://jobs.example.com/{i},2026-01-{(i % 28) + 1:02d},Applied"
        for i in range(count)
    ]
    return (HEADER + "\n".join(lines) + "\n").encode()


async def upload(client, headers, content: bytes, filename: str = "applications.csv", user_id: str = USER_ID):
    return await client.post(
        UPLOAD_URL,
        data={"user_id": user_id},
        files={"csv_file": (filename, content, "text/csv")},
        headers=headers
    )


@pytest.mark.asyncio
async def test_purchase_then_batch_upload(client, db_session, session_maker, admin_headers, user_headers):
    plan = await create_plan(db_session, credits=50, price=Decimal("29.99"))
    session = {
        "id": "cs_e2e",
        "amount_total": 2999,
        "currency": "usd",
        "payment_status": "paid",
        "metadata": {"userId": USER_ID, "planId": str(plan.id)},
    }

    webhook = await client.post("/api/payment/webhook", content=webhook_body("checkout.session.completed", session))
    assert webhook.status_code == 200

    response = await upload(client, admin_headers, applications_csv(12))

    assert response.status_code == 200
    body = response.json()
    assert body["applications_created"] == 12
    assert body["credits_deducted"] == 12
    assert body["batch_number"] == 1

    [user_plan] = await fetch_all(session_maker, UserPlan, user_id=USER_ID)
    assert user_plan.credits_remaining == 38

    transactions = await fetch_all(session_maker, Transaction, user_id=USER_ID)
    assert [(t.type, t.status) for t in transactions] == [(TransactionType.PURCHASE, TransactionStatus.COMPLETED)]

    balance = await client.get("/api/credits", headers=user_headers)
    assert balance.json()["total_credits"] == 38


@pytest.mark.asyncio
async def test_batch_numbers_increase_per_user(client, db_session, session_maker, admin_headers, user_headers):
    plan = await create_plan(db_session)
    await create_user_plan(db_session, plan, credits_remaining=10)

    await upload(client, admin_headers, applications_csv(2))
    second = await upload(client, admin_headers, applications_csv(3))

    assert second.json()["batch_number"] == 2
    batches = await client.get("/api/applications/batches", headers=user_headers)
    assert [b["batch_number"] for b in batches.json()] == [2, 1]


@pytest.mark.asyncio
async def test_upload_without_enough_credits_creates_no_batch(client, db_session, session_maker, admin_headers):
    plan = await create_plan(db_session)
    row = await create_user_plan(db_session, plan, credits_remaining=5)

    response = await upload(client, admin_headers, applications_csv(6))

    assert response.status_code == 402
    assert await fetch_all(session_maker, ApplicationBatch) == []
    [stored] = await fetch_all(session_maker, UserPlan, id=row.id)
    assert stored.credits_remaining == 5


@pytest.mark.asyncio
async def test_upload_rejects_invalid_rows(client, db_session, session_maker, admin_headers):
    plan = await create_plan(db_session)
    await create_user_plan(db_session, plan)
    content = (HEADER + "Engineer,,https://jobs.example.com/1,2026-01-01,Applied\n").encode()

    response = await upload(client, admin_headers, content)

    assert response.status_code == 400
    assert response.json()["detail"]["details"] == ["Row 2: Missing Company"]
    assert await fetch_all(session_maker, ApplicationBatch) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("filename, content", [
    ("applications.txt", HEADER.encode()),
    ("applications.csv", HEADER.encode()),
    ("applications.csv", b"\xff\xfe\x00bad"),
])
async def test_upload_rejects_unusable_files(client, admin_headers, filename, content):
    response = await upload(client, admin_headers, content, filename=filename)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_requires_admin(client, user_headers):
    response = await upload(client, user_headers, applications_csv(1))

    assert response.status_code == 403

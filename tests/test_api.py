from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from app.db.database import get_db
from app.main import app

OWNER = {"X-Actor-Id": "owner-1", "X-Actor-Name": "Kari Nordmann", "X-Actor-Role": "sender"}
SUPPLIER_A = {"X-Actor-Id": "sup-a", "X-Actor-Email": "ola@entreprenor-a.no", "X-Company-Name": "Entreprenør A AS"}
SUPPLIER_B = {"X-Actor-Id": "sup-b", "X-Actor-Email": "per@entreprenor-b.no", "X-Company-Name": "Entreprenør B AS"}


@pytest.fixture
async def client(db):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def tender_body(**overrides):
    body = {
        "project_id": "proj-1",
        "title": "Ny barnehage Solsiden",
        "contract_standard": "NS8407",
        "status": "open",
        "deadline": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat(),
        "invited_suppliers": [
            {"supplier_id": "sup-a", "company_name": "Entreprenør A AS", "email": "ola@entreprenor-a.no"},
            {"supplier_id": "sup-b", "company_name": "Entreprenør B AS", "email": "per@entreprenor-b.no"},
        ],
        "ns8407": {"prosjekteringsomfang_prosent": 40},
    }
    body.update(overrides)
    return body


async def create(client, **overrides):
    response = await client.post("/v1/tenders/", json=tender_body(**overrides), headers=OWNER)
    assert response.status_code == 201, response.text
    return response.json()["tender"]


async def test_create_and_fetch_tender(client):
    tender = await create(client)

    response = await client.get(f"/v1/tenders/{tender['id']}")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "open"
    assert body["ns8407"]["prosjekteringsomfang_prosent"] == 40


async def test_validation_errors_are_422(client):
    response = await client.post("/v1/tenders/", json=tender_body(title=""), headers=OWNER)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["success"] is False
    assert detail["error_code"] == "validation"
    assert detail["errors"] == {"title": "Tittel er påkrevd"}


async def test_missing_actor_header_is_rejected(client):
    response = await client.post("/v1/tenders/", json=tender_body())
    assert response.status_code == 422


async def test_unknown_tender_is_404(client):
    assert (await client.get("/v1/tenders/tender_missing")).status_code == 404
    response = await client.post("/v1/tenders/tender_missing/close", headers=OWNER)
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "Anskaffelse ikke funnet"


async def test_owner_listing(client):
    tender = await create(client)

    response = await client.get("/v1/tenders/", headers=OWNER)

    assert [t["id"] for t in response.json()] == [tender["id"]]


async def test_supplier_invitations(client):
    tender = await create(client)

    response = await client.get("/v1/tenders/invitations", headers=SUPPLIER_B)

    assert [t["id"] for t in response.json()] == [tender["id"]]


async def test_bid_award_and_standstill(client):
    tender = await create(client)
    tender_id = tender["id"]

    high = await client.post(f"/v1/tenders/{tender_id}/bids", data={"price": "100000"}, headers=SUPPLIER_A)
    low = await client.post(
        f"/v1/tenders/{tender_id}/bids",
        data={"price": "90000"},
        files={"files": ("Tilbud.pdf", b"%PDF-1.7", "application/pdf")},
        headers=SUPPLIER_B,
    )
    assert high.status_code == 201, high.text
    assert low.status_code == 201, low.text
    low_bid = low.json()["bid"]
    assert low_bid["documents"][0]["name"] == "Tilbud.pdf"

    awarded = await client.post(f"/v1/tenders/{tender_id}/bids/{low_bid['id']}/award", headers=OWNER)
    assert awarded.status_code == 200
    assert awarded.json()["tender"]["awarded_bid_id"] == low_bid["id"]

    conflict = await client.post(f"/v1/tenders/{tender_id}/bids/{high.json()['bid']['id']}/award", headers=OWNER)
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["error"] == "Anskaffelsen er allerede tildelt"

    standstill = await client.get(f"/v1/tenders/{tender_id}/standstill")
    assert standstill.json()["ended"] is False

    gate = await client.get(f"/v1/tenders/{tender_id}/contract-gate")
    assert gate.json()["allowed"] is False


async def test_uninvited_bid_is_403(client):
    tender = await create(client)
    headers = {"X-Actor-Id": "sup-x", "X-Actor-Email": "post@ukjent.no"}

    response = await client.post(f"/v1/tenders/{tender['id']}/bids", data={"price": "1000"}, headers=headers)

    assert response.status_code == 403


async def test_document_upload_and_versions(client):
    tender = await create(client)
    url = f"/v1/tenders/{tender['id']}/documents"

    await client.post(url, files={"files": ("Plantegning.pdf", b"1" * 100, "application/pdf")}, headers=OWNER)
    response = await client.post(url, files={"files": ("Plantegning.pdf", b"1" * 200, "application/pdf")},
                                 headers=OWNER)

    assert response.status_code == 200
    document_id = response.json()["tender"]["documents"][0]["id"]

    versions = (await client.get(f"/v1/documents/{document_id}/versions")).json()
    assert [v["version_number"] for v in versions] == [2, 1]

    current = (await client.get(f"/v1/documents/{document_id}/versions/current")).json()
    assert current["version_number"] == 2

    comparison = (await client.get(f"/v1/documents/{document_id}/versions/compare",
                                   params={"v1": 1, "v2": 2})).json()
    assert comparison["has_changes"] is True

    history = (await client.get(f"/v1/documents/{document_id}/history")).json()
    assert history[0]["version"] == 2

    restored = await client.post(f"{url}/{document_id}/versions/1/restore", headers=OWNER)
    assert restored.json()["tender"]["documents"][0]["size"] == 100

    missing = await client.get(f"/v1/documents/{document_id}/versions/9")
    assert missing.status_code == 404


async def test_question_on_draft_is_409(client):
    tender = await create(client, status="draft")

    response = await client.post(f"/v1/tenders/{tender['id']}/questions", json={"question": "Befaring?"},
                                 headers=SUPPLIER_A)

    assert response.status_code == 409


async def test_transitions_over_http(client):
    tender = await create(client, status="draft")
    tender_id = tender["id"]

    published = await client.post(f"/v1/tenders/{tender_id}/publish", headers=OWNER)
    closed = await client.post(f"/v1/tenders/{tender_id}/close", headers=OWNER)
    reopened = await client.post(f"/v1/tenders/{tender_id}/reopen", headers=OWNER)
    again = await client.post(f"/v1/tenders/{tender_id}/publish", headers=OWNER)

    assert published.json()["tender"]["status"] == "open"
    assert closed.json()["tender"]["status"] == "closed"
    assert reopened.json()["tender"]["status"] == "open"
    assert again.status_code == 409


async def test_delete_tender(client):
    tender = await create(client)

    response = await client.delete(f"/v1/tenders/{tender['id']}", headers=OWNER)

    assert response.status_code == 200
    assert (await client.get(f"/v1/tenders/{tender['id']}")).status_code == 404


async def test_deadline_reminders_are_sender_only(client):
    await create(client)

    assert (await client.post("/v1/tenders/deadline-reminders", headers=SUPPLIER_A)).status_code == 403
    response = await client.post("/v1/tenders/deadline-reminders", headers=OWNER)

    assert response.status_code == 200
    assert response.json() == {"checked": 0, "reminders": [], "errors": []}

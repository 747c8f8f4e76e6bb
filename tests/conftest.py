import os

os.environ.setdefault("S3_BUCKET_NAME", "anbud-test")
os.environ.setdefault("S3_ENDPOINT_URL", "https://s3.test")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_FILE"] = ""
os.environ["TELEGRAM_BOT_TOKEN"] = ""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models.documents  # noqa: F401
import app.models.tenders  # noqa: F401
from app.models.base import Base
from app.schemas.common import Actor
from app.schemas.document import StoredFile
from app.schemas.tenders import InvitationCreate, TenderCreate
from app.services import bid_service, notifications, tender_service
from app.services.storage import StorageError

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


class FakeStorage:
    """In-memory replacement for the S3 client."""

    def __init__(self):
        self.files = {}
        self.deleted = []
        self.fail_upload = False
        self.fail_delete = False

    async def upload_file(self, content, path, file_name, content_type=None):
        if self.fail_upload:
            raise StorageError(f"Kunne ikke laste opp fil: {file_name}")
        self.files[path] = content
        return StoredFile(
            url=f"https://s3.test/anbud-test/{path}",
            path=path,
            name=file_name,
            size=len(content),
            type=content_type or "application/pdf",
        )

    async def delete_file(self, path):
        if self.fail_delete:
            raise StorageError(f"Kunne ikke slette fil: {path}")
        self.deleted.append(path)
        self.files.pop(path, None)


@pytest.fixture(autouse=True)
def storage(monkeypatch):
    fake = FakeStorage()
    for module in (tender_service, bid_service):
        monkeypatch.setattr(module, "upload_file", fake.upload_file)
        monkeypatch.setattr(module, "delete_file", fake.delete_file)
    return fake


@pytest.fixture(autouse=True)
def sent_alerts(monkeypatch):
    sent = []

    async def fake_alert(tender, message):
        sent.append((tender.id, message))

    monkeypatch.setattr(notifications, "send_telegram_alert", fake_alert)
    return sent


@pytest.fixture
def owner():
    return Actor(id="owner-1", name="Kari Nordmann", email="kari@byggherre.no", role="sender",
                 company_name="Byggherre AS")


@pytest.fixture
def supplier_a():
    return Actor(id="sup-a", name="Ola Hansen", email="ola@entreprenor-a.no", company_id="c-a",
                 company_name="Entreprenør A AS")


@pytest.fixture
def supplier_b():
    return Actor(id="sup-b", name="Per Olsen", email="per@entreprenor-b.no", company_id="c-b",
                 company_name="Entreprenør B AS")


def tender_payload(**overrides) -> TenderCreate:
    values = dict(
        project_id="proj-1",
        title="Rehabilitering av Sentrum skole",
        description="Totalentreprise for rehabilitering",
        contract_standard="NS8405",
        status="open",
        price=2500000,
        deadline=NOW + timedelta(days=30),
        invited_suppliers=[
            InvitationCreate(supplier_id="sup-a", company_name="Entreprenør A AS", email="ola@entreprenor-a.no"),
            InvitationCreate(supplier_id="sup-b", company_name="Entreprenør B AS", email="per@entreprenor-b.no"),
        ],
    )
    values.update(overrides)
    return TenderCreate(**values)


@pytest.fixture
def create_open_tender(db, owner):
    async def factory(**overrides):
        result = await tender_service.create_tender(db, tender_payload(**overrides), owner, now=NOW)
        assert result.success, result.errors
        return result.tender

    return factory

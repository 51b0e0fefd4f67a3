import os
os.environ["APP_ENV"] = "test"

# THEN import anything else
import shutil
import tempfile
import time
import uuid
from datetime import UTC, datetime, timedelta
from typing import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from salesboard.core.passwords import hash_password
from salesboard.db.session import Database, get_db
from salesboard.models.campaign import Campaign, CampaignParticipant
from salesboard.models.company import Company
from salesboard.models.user import ROLE_ADMIN, ROLE_SELLER, User


def _run_alembic_upgrade(root_dir: Path, database_url: str) -> None:
    cfg = Config(str(root_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(root_dir / "alembic"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    os.environ["DATABASE_URL"] = database_url
    command.upgrade(cfg, "head")


def pytest_configure(config: pytest.Config) -> None:
    workers = getattr(config.option, "numprocesses", None)
    if workers and int(workers) > 1:
        pytest.exit("SQLite test path does not support pytest-xdist parallel workers.")


@pytest.fixture(scope="session", autouse=True)
def apply_migrations() -> Generator[Path, None, None]:
    root_dir = Path(__file__).resolve().parents[1]
    temp_dir = Path(tempfile.mkdtemp(prefix="pytest-db-"))
    template_db_path = temp_dir / f"template-{uuid.uuid4().hex}.sqlite3"
    database_url = f"sqlite:///{template_db_path.as_posix()}"
    os.environ["DATABASE_URL"] = database_url

    from salesboard.core.config import get_settings

    get_settings.cache_clear()
    _run_alembic_upgrade(root_dir, database_url)
    verification_engine = create_engine(database_url, connect_args={"check_same_thread": False, "timeout": 30}, poolclass=NullPool)
    try:
        has_sales = inspect(verification_engine).has_table("sales")
    finally:
        verification_engine.dispose()
    if not has_sales:
        raise RuntimeError("Alembic migration parity check failed; missing table: sales")
    yield template_db_path
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="session", autouse=True)
def import_app(apply_migrations: Path) -> None:
    # Import app after migrating so settings see the template database.
    import salesboard.main  # noqa: F401


def _user(email: str, password: str, *, company: Company | None, role: str, first: str | None, last: str | None) -> User:
    now = datetime.now(UTC)
    return User(
        id=str(uuid.uuid4()),
        email=email,
        password_hash=hash_password(password),
        first_name=first,
        last_name=last,
        role=role,
        company_id=company.id if company is not None else None,
        is_active=True,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture()
def database(apply_migrations: Path) -> Generator[Database, None, None]:
    test_db_path = apply_migrations.parent / f"{uuid.uuid4().hex}.sqlite3"
    shutil.copy2(apply_migrations, test_db_path)
    database_url = f"sqlite:///{test_db_path.as_posix()}"
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
    )
    yield Database(engine)
    engine.dispose()
    for _ in range(5):
        try:
            test_db_path.unlink(missing_ok=True)
            break
        except PermissionError:
            time.sleep(0.05)


@pytest.fixture()
def db_session(database: Database) -> Generator[Session, None, None]:
    test_session = database.session()

    now = datetime.now(UTC)
    company_a = Company(id=str(uuid.uuid4()), name="Acme Sales", created_at=now, updated_at=now)
    company_b = Company(id=str(uuid.uuid4()), name="Globex", created_at=now, updated_at=now)
    admin = _user("admin@acme.test", "pass-admin", company=company_a, role=ROLE_ADMIN, first="Ada", last="Admin")
    alice = _user("alice@acme.test", "pass-alice", company=company_a, role=ROLE_SELLER, first="Alice", last=None)
    bob = _user("bob@acme.test", "pass-bob", company=company_a, role=ROLE_SELLER, first="Bob", last=None)
    carol = _user("carol@globex.test", "pass-carol", company=company_b, role=ROLE_ADMIN, first="Carol", last=None)
    loner = _user("loner@example.test", "pass-loner", company=None, role=ROLE_SELLER, first=None, last=None)
    campaign = Campaign(
        id=str(uuid.uuid4()),
        company_id=company_a.id,
        name="Q4 Push",
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=30),
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    foreign_campaign = Campaign(
        id=str(uuid.uuid4()),
        company_id=company_b.id,
        name="Globex Sprint",
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=30),
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    test_session.add_all([company_a, company_b])
    test_session.flush()
    test_session.add_all([admin, alice, bob, carol, loner])
    test_session.flush()
    test_session.add_all([campaign, foreign_campaign])
    test_session.flush()
    test_session.add_all(
        [
            CampaignParticipant(id=str(uuid.uuid4()), campaign_id=campaign.id, user_id=alice.id, joined_at=now),
            CampaignParticipant(id=str(uuid.uuid4()), campaign_id=campaign.id, user_id=bob.id, joined_at=now),
            CampaignParticipant(id=str(uuid.uuid4()), campaign_id=foreign_campaign.id, user_id=carol.id, joined_at=now),
        ]
    )
    test_session.commit()
    test_session.info["seed"] = {
        "company_a": company_a.id,
        "company_b": company_b.id,
        "admin": admin.id,
        "alice": alice.id,
        "bob": bob.id,
        "carol": carol.id,
        "loner": loner.id,
        "campaign": campaign.id,
        "foreign_campaign": foreign_campaign.id,
    }
    yield test_session
    test_session.close()


@pytest.fixture()
def seed(db_session: Session) -> dict[str, str]:
    return db_session.info["seed"]


@pytest.fixture()
def client(database: Database, db_session: Session) -> Generator[TestClient, None, None]:
    from salesboard.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        # The live websocket opens its own sessions from app.state.
        app.state.database = database
        yield test_client
    app.dependency_overrides.clear()


def login(client: TestClient, email: str, password: str) -> str:
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()["data"]["access_token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(client: TestClient) -> dict[str, str]:
    return bearer(login(client, "admin@acme.test", "pass-admin"))


@pytest.fixture()
def alice_headers(client: TestClient) -> dict[str, str]:
    return bearer(login(client, "alice@acme.test", "pass-alice"))


@pytest.fixture()
def bob_headers(client: TestClient) -> dict[str, str]:
    return bearer(login(client, "bob@acme.test", "pass-bob"))


@pytest.fixture()
def carol_headers(client: TestClient) -> dict[str, str]:
    return bearer(login(client, "carol@globex.test", "pass-carol"))


@pytest.fixture()
def token_for(client: TestClient):
    def _token(email: str, password: str) -> str:
        return login(client, email, password)

    return _token

# tests/conftest.py
import io
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sannu.main import app
from sannu.db.database import Base, get_db

# Import models so metadata knows about all tables
import sannu.models  # noqa: F401
from sannu.api.dependencies.services import get_email_service
from sannu.auth.passwords import hash_password
from sannu.models.enums import ProjectStatus, ProjectVisibility, Role, TenantStatus
from sannu.models.product import Product
from sannu.models.project import Project
from sannu.models.tenant import Tenant
from sannu.models.user import User
from sannu.models.user_tenant_role import UserTenantRole
from sannu.services.cache import reset_cache
from sannu.services.email_service import EmailService
from sannu.tenancy.context import reset_current_tenant, set_current_tenant

PASSWORD = "secret-password"


@pytest.fixture(scope="session")
def engine():
    """Create an in-memory SQLite database shared across tests and threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def clean_db(engine):
    """Reset all tables before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Fresh cache, temp media root and a fixed app URL for every test."""
    monkeypatch.setenv("MEDIA_ROOT", str(tmp_path / "media"))
    monkeypatch.setenv("APP_URL", "http://sannu.test:8000")
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)
    reset_cache()
    token = set_current_tenant(None)
    yield
    reset_current_tenant(token)
    reset_cache()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    """Return a new SQLAlchemy session for each test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class DummyMailProvider:
    """Records messages instead of sending them."""

    def __init__(self):
        self.sent = []

    def send(self, to, subject, html_body, from_email, from_name):
        self.sent.append({
            "to": to,
            "subject": subject,
            "html_body": html_body,
            "from_email": from_email,
            "from_name": from_name,
        })
        return True

    def subjects(self):
        return [m["subject"] for m in self.sent]


@pytest.fixture()
def mail():
    return DummyMailProvider()


@pytest.fixture()
def email_service(mail):
    return EmailService(provider=mail)


@pytest.fixture
def client(db, email_service):
    """FastAPI test client that routes all DB deps to the test session."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service

    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(email=None, role=Role.CONTRIBUTOR, name="Test User", is_active=True, password=PASSWORD):
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@acme.io",
            password_hash=hash_password(password),
            role=Role(role).value,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def make_tenant(db):
    def _make_tenant(slug="acme", name="Acme Cooperative", status=TenantStatus.ACTIVE, **extra):
        tenant = Tenant(
            slug=slug,
            name=name,
            status=TenantStatus(status).value,
            is_active=TenantStatus(status) is TenantStatus.ACTIVE,
            **extra,
        )
        db.add(tenant)
        db.commit()
        return tenant

    return _make_tenant


@pytest.fixture
def grant_role(db):
    def _grant_role(user, tenant, role=Role.TENANT_ADMIN):
        db.add(UserTenantRole(user_id=user.id, tenant_id=tenant.id, role=Role(role).value, is_active=True))
        db.commit()
        db.refresh(user)
        return user

    return _grant_role


@pytest.fixture
def make_project(db):
    def _make_project(tenant, creator=None, products=(("Bag of rice", "120.00"),), **fields):
        values = dict(
            name="Community Rice Purchase",
            slug=None,
            description="Bulk purchase of rice for members.",
            visibility=ProjectVisibility.PUBLIC.value,
            status=ProjectStatus.DRAFT.value,
            start_date=date.today(),
            end_date=date.today() + timedelta(days=60),
            payment_options=["full"],
        )
        values.update(fields)
        values["slug"] = values["slug"] or values["name"].lower().replace(" ", "-")
        project = Project(
            tenant_id=tenant.id,
            created_by=creator.id if creator is not None else None,
            **values,
        )
        db.add(project)
        db.flush()

        total = Decimal("0.00")
        for position, (name, price) in enumerate(products):
            db.add(Product(
                tenant_id=tenant.id,
                project_id=project.id,
                name=name,
                price=Decimal(price),
                sort_order=position,
            ))
            total += Decimal(price)
        project.total_amount = fields.get("total_amount", total)
        db.commit()
        db.refresh(project)
        return project

    return _make_project


@pytest.fixture
def login(client):
    def _login(user, password=PASSWORD):
        response = client.post("/login", json={"email": user.email, "password": password})
        assert response.status_code == 200, response.text
        return response

    return _login


def image_bytes(size=(400, 300), fmt="PNG", color=(200, 40, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return image_bytes()


@pytest.fixture
def make_image():
    return image_bytes

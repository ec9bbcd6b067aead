"""
Test Configuration and Fixtures
Shared testing infrastructure for BizOps
"""

import os

# The application engine is built at import time; point it at SQLite first
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from decimal import Decimal
from typing import Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from bizops.core.database import Base, build_engine, get_db
from bizops.core.security import create_access_token
from bizops.main import app
from bizops.models import Organization
from bizops.schemas.scheduling import CustomerCreate, ServiceCreate, StaffCreate, VehicleCreate
from bizops.services.ledger import ChartOfAccountsService
from bizops.services.scheduling import MasterDataService

# Test database - in-memory SQLite shared through a static pool
TEST_DATABASE_URL = "sqlite://"

engine = build_engine(TEST_DATABASE_URL)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def organization(db_session: Session) -> Organization:
    """Organization open Monday 09:00-12:00 with 60 minute slots and a 15 minute buffer"""
    org = MasterDataService(db_session).create_organization(
        "Test Garage",
        business_hours={"monday": {"open": "09:00", "close": "12:00"}},
    )
    return org


@pytest.fixture
def other_organization(db_session: Session) -> Organization:
    return MasterDataService(db_session).create_organization("Other Garage")


@pytest.fixture
def org_headers(organization: Organization) -> Dict[str, str]:
    return {"X-Organization-ID": organization.id, "X-User-ID": "user-1"}


@pytest.fixture
def auth_headers(organization: Organization) -> Dict[str, str]:
    """Bearer token for user-1 in the test organization"""
    token = create_access_token("user-1", organization.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def scheduling_data(db_session: Session, organization: Organization) -> Dict[str, str]:
    """Staff, customer with a vehicle, and a 30 minute service priced at 50"""
    service = MasterDataService(db_session)
    customer = service.create_customer(organization.id, CustomerCreate(first_name="Ada", last_name="Lovelace"))
    vehicle = service.create_vehicle(organization.id, VehicleCreate(
        customer_id=customer.id, make="Ford", model="Focus", license_plate="AB12 CDE"
    ))
    staff = service.create_staff(organization.id, StaffCreate(name="Sam"))
    other_staff = service.create_staff(organization.id, StaffCreate(name="Kim"))
    oil_change = service.create_service(organization.id, ServiceCreate(
        name="Oil change", price=Decimal("50.00"), duration_minutes=30
    ))
    return {
        "customer_id": customer.id,
        "vehicle_id": vehicle.id,
        "staff_id": staff.id,
        "other_staff_id": other_staff.id,
        "service_id": oil_change.id,
    }


@pytest.fixture
def accounts(db_session: Session, organization: Organization) -> Dict[str, str]:
    """Default chart of accounts, keyed by account code"""
    created = ChartOfAccountsService(db_session).initialize_default_accounts(organization.id)
    return {account.code: account.id for account in created}

"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from credit_ledger.api.main import create_app
from credit_ledger.config import Settings
from credit_ledger.infrastructure.database.models import Base, Customer
from credit_ledger.infrastructure.database.session import LedgerStore
from credit_ledger.services.container import LedgerServices


TENANT = "shop-1"
OTHER_TENANT = "shop-2"


@pytest.fixture
def store() -> Generator[LedgerStore, None, None]:
    """In-memory ledger store, fresh schema per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ledger_store = LedgerStore(engine, Settings(default_terms_days=30))
    ledger_store.create_schema()
    try:
        yield ledger_store
    finally:
        Base.metadata.drop_all(bind=engine)
        ledger_store.close()


@pytest.fixture
def services(store: LedgerStore) -> LedgerServices:
    return LedgerServices.build(store)


@pytest.fixture
def add_customer(store: LedgerStore) -> Callable[..., str]:
    """Insert a customer the way the customer CRUD layer would"""

    def _add(
        customer_id: str = "cust-1",
        credit_limit_cents: int = 100000,
        tenant_id: str = TENANT,
        name: str = "Asha Traders",
    ) -> str:
        session = store._session_factory()
        try:
            session.add(
                Customer(
                    id=customer_id,
                    tenant_id=tenant_id,
                    name=name,
                    credit_limit_cents=credit_limit_cents,
                    outstanding_balance_cents=0,
                )
            )
            session.commit()
        finally:
            session.close()
        return customer_id

    return _add


@pytest.fixture
def customer_balance(store: LedgerStore) -> Callable[[str], int]:
    """Read the persisted (reconciled) balance field straight from the row"""

    def _balance(customer_id: str, tenant_id: str = TENANT) -> int:
        with store.read(tenant_id) as repo:
            return repo.get_customer(customer_id).outstanding_balance_cents

    return _balance


@pytest.fixture
def client(store: LedgerStore) -> TestClient:
    """FastAPI test client bound to the in-memory store"""
    app = create_app(store)
    return TestClient(app)


@pytest.fixture
def today() -> date:
    return date.today()

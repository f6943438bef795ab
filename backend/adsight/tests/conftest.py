"""Pytest configuration for adsight integration tests

WHAT: Provides shared fixtures for service and HTTP endpoint tests
WHY: Ensures consistent test setup, database isolation and tenant scoping
REFERENCES:
    - adsight/main.py: FastAPI application
    - adsight/database.py: Database configuration
    - adsight/models.py: Insight and metric config tables
"""

import os
from datetime import date
from typing import Callable, Generator, Iterable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment (adsight.database reads DATABASE_URL at import time)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.pop("SENTRY_DSN", None)


ORG_ID = "org_test"
CLIENT_ID = "client_test"


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """Create in-memory test database engine shared by every session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    from adsight.models import Base
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """Create test database session with rollback."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)

    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def app(test_db_session):
    """Create FastAPI test application."""
    from adsight.main import create_app
    from adsight.database import get_db

    test_app = create_app()

    def override_get_db():
        yield test_db_session

    test_app.dependency_overrides[get_db] = override_get_db

    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Create TestClient for HTTP testing."""
    return TestClient(app)


@pytest.fixture
def org_headers():
    """Tenant header every data endpoint requires."""
    return {"X-Organization-ID": ORG_ID}


# ============================================================================
# Insight Fixtures
# ============================================================================

@pytest.fixture
def add_insights(test_db_session) -> Callable:
    """Insert insight rows for a model; scope columns default to the test tenant."""

    def _add(model, rows: Iterable[dict]):
        for row in rows:
            values = {"organization_id": ORG_ID, "client_id": CLIENT_ID, **row}
            test_db_session.add(model(**values))
        test_db_session.commit()

    return _add


@pytest.fixture
def sample_insights(add_insights):
    """Two campaigns, three ad sets, three ads over 2024-01-01..02.

    Campaign A ("Spring Sale") spends 10.50 + 9.50 with 300 impressions and
    20 clicks; campaign B ("Brand Awareness") spends 30. Rows for another
    organization and outside January must never show up.
    """
    from adsight import models

    add_insights(models.CampaignInsight, [
        dict(campaign_id="A", campaign_name="Spring Sale", status="ACTIVE", objective="LEAD_GENERATION",
             date=date(2024, 1, 1), spend=10.5, impressions=100, reach=50, clicks=5, leads=1, frequency=2.0),
        dict(campaign_id="A", campaign_name="Spring Sale", status="ACTIVE", objective="LEAD_GENERATION",
             date=date(2024, 1, 2), spend=9.5, impressions=200, reach=100, clicks=15, leads=1, frequency=2.0),
        dict(campaign_id="B", campaign_name="Brand Awareness", status="PAUSED", objective="REACH",
             date=date(2024, 1, 1), spend=30, impressions=1000, reach=500, clicks=10, frequency=2.0),
        dict(campaign_id="A", campaign_name="Spring Sale", date=date(2024, 2, 1), spend=500, impressions=9999),
        dict(organization_id="org_other", campaign_id="C", campaign_name="Other Tenant",
             date=date(2024, 1, 1), spend=777),
    ])
    add_insights(models.AdsetInsight, [
        dict(campaign_id="A", campaign_name="Spring Sale", adset_id="AS1", adset_name="Spring Broad",
             date=date(2024, 1, 1), spend=6, impressions=60, clicks=3),
        dict(campaign_id="A", campaign_name="Spring Sale", adset_id="AS2", adset_name="Spring Lookalike",
             date=date(2024, 1, 1), spend=4.5, impressions=40, clicks=2),
        dict(campaign_id="B", campaign_name="Brand Awareness", adset_id="AS3", adset_name="Brand Video",
             date=date(2024, 1, 1), spend=30, impressions=1000, clicks=10),
    ])
    add_insights(models.AdInsight, [
        dict(campaign_id="A", adset_id="AS1", ad_id="AD1", ad_name="Carousel", date=date(2024, 1, 1), spend=6),
        dict(campaign_id="A", adset_id="AS2", ad_id="AD2", ad_name="Video", date=date(2024, 1, 1), spend=4.5),
        dict(campaign_id="B", adset_id="AS3", ad_id="AD3", ad_name="Teaser", date=date(2024, 1, 1), spend=30),
    ])

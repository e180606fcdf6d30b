import os
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['NOTIFICATIONS_ENABLED'] = 'false'
os.environ['RATE_LIMIT_BACKEND'] = 'memory'

from fastapi.testclient import TestClient  # noqa: E402

from app.api.dependencies import create_access_token  # noqa: E402
from app.config.database import get_db  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models import (  # noqa: E402
    AvailabilityWindow,
    Base,
    BookingSettings,
    Business,
    Service,
)
from app.services.rate_limit.rate_limit_store import InMemoryRateLimitStore  # noqa: E402

# Thursday; the following Monday is 2026-01-05 (America/New_York is UTC-5)
NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture()
def business(db) -> Business:
    business = Business(name='Main Street Barbers', webhook_urls={'booking': ['https://crm.example.com/hook']})
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


@pytest.fixture()
def booking_settings(db, business) -> BookingSettings:
    settings = BookingSettings(
        business_id=business.id,
        timezone='America/New_York',
        buffer_minutes=15,
        min_notice_hours=24,
        max_days_out=90,
        default_duration_minutes=30,
        booking_mode='REQUEST_ONLY',
    )
    db.add(settings)
    db.commit()
    db.refresh(settings)
    return settings


@pytest.fixture()
def monday_hours(db, business):
    window = AvailabilityWindow(business_id=business.id, day_of_week=1, start_time='09:00', end_time='17:00')
    db.add(window)
    db.commit()
    return window


@pytest.fixture()
def haircut(db, business) -> Service:
    service = Service(business_id=business.id, name='Haircut', duration_minutes=30)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture()
def rate_limit_store() -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore()


@pytest.fixture()
def client(engine, rate_limit_store):
    app = create_app(rate_limit_store=rate_limit_store)
    testing_session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = testing_session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture()
def auth_headers(business) -> dict:
    token = create_access_token({'business_id': str(business.id)})
    return {'Authorization': f'Bearer {token}'}

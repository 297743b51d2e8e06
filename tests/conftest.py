"""Shared fixtures for the broker intelligence test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from broker_intel.models import CompanyPreferences, LoadRecord
from broker_intel.services.broker_directory import BrokerDirectory
from broker_intel.services.store import InMemoryLoadStore

BASE_TIME = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def prefs():
    return CompanyPreferences(
        min_rate_per_mile=2.00,
        preferred_states=frozenset({"TX", "OK"}),
        preferred_equipment=("Dry Van",),
        max_distance_miles=500,
        home_base="Dallas, TX",
    )


@pytest.fixture
def directory():
    return BrokerDirectory()


@pytest.fixture
def store():
    return InMemoryLoadStore()


def make_load(message_id, day, broker="Hub Group", origin="Dallas, TX",
              destination="Atlanta, GA", rate_per_mile=2.0, broker_email="dispatch@hubgroup.com"):
    """Load record extracted `day` days after BASE_TIME."""
    return LoadRecord(
        message_id=message_id,
        extracted_at=BASE_TIME + timedelta(days=day),
        origin=origin,
        destination=destination,
        rate_per_mile=rate_per_mile,
        broker=broker,
        broker_email=broker_email,
    )

# --------------------------- tests/unit/test_store.py ----------------------------
"""Load store implementations: in-memory and Supabase (mocked client)."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from broker_intel.config import settings
from broker_intel.exceptions import StoreUnavailableError
from broker_intel.services.broker_stats import BrokerRelationshipAggregator
from broker_intel.services.store import SupabaseLoadStore
from tests.conftest import BASE_TIME, make_load


def test_in_memory_store_filters_by_broker(store):
    store.save_load(make_load("m1", 0))
    store.save_load(make_load("m2", 1, broker="Echo Global"))

    assert [load.message_id for load in store.loads_for_broker("Hub Group")] == ["m1"]
    assert len(store.all_loads()) == 2


def test_in_memory_store_replaces_load_for_same_message(store):
    store.save_load(make_load("m1", 0, rate_per_mile=2.0))
    store.save_load(make_load("m1", 0, rate_per_mile=2.5))

    loads = store.loads_for_broker("Hub Group")
    assert len(loads) == 1
    assert loads[0].rate_per_mile == 2.5


def test_supabase_save_load_upserts_on_message_id():
    client = MagicMock()
    record = make_load("m1", 0)

    SupabaseLoadStore(client).save_load(record)

    client.table.assert_called_with(settings.LOADS_TABLE)
    upsert = client.table.return_value.upsert
    assert upsert.call_args.kwargs == {"on_conflict": "message_id"}
    row = upsert.call_args[0][0]
    assert row["message_id"] == "m1"
    assert row["extracted_at"] == BASE_TIME.isoformat()


def test_supabase_loads_for_broker_parses_rows():
    client = MagicMock()
    record = make_load("m1", 0)
    query = client.table.return_value.select.return_value.eq.return_value
    query.execute.return_value = MagicMock(data=[record.to_dict()])

    loads = SupabaseLoadStore(client).loads_for_broker("Hub Group")

    client.table.return_value.select.return_value.eq.assert_called_with("broker", "Hub Group")
    assert loads == [record]


def test_supabase_replace_stats_upserts_on_broker(prefs):
    client = MagicMock()
    stats = BrokerRelationshipAggregator(prefs).recompute(
        "Hub Group", [make_load("m1", 0)], now=BASE_TIME + timedelta(days=1),
    )

    SupabaseLoadStore(client).replace_broker_stats(stats)

    client.table.return_value.upsert.assert_called_once_with(stats.to_dict(), on_conflict="broker")


def test_supabase_stats_round_trip(prefs):
    client = MagicMock()
    stats = BrokerRelationshipAggregator(prefs).recompute(
        "Hub Group", [make_load("m1", 0), make_load("m2", 3)], now=BASE_TIME + timedelta(days=5),
    )
    query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
    query.execute.return_value = MagicMock(data=[stats.to_dict()])

    assert SupabaseLoadStore(client).get_broker_stats("Hub Group") == stats

    query.execute.return_value = MagicMock(data=[])
    assert SupabaseLoadStore(client).get_broker_stats("Hub Group") is None


def test_supabase_errors_become_unavailable():
    client = MagicMock()
    client.table.return_value.upsert.return_value.execute.side_effect = ConnectionError("timeout")

    with pytest.raises(StoreUnavailableError) as excinfo:
        SupabaseLoadStore(client).save_load(make_load("m1", 0))

    assert excinfo.value.operation == "save_load"
    assert excinfo.value.recoverable


def test_from_settings_requires_credentials(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_URL", None)
    with pytest.raises(ValueError):
        SupabaseLoadStore.from_settings()

# --------------------------- broker_intel/services/store.py ----------------------------
"""
Broker Intelligence · Load Store

OVERVIEW:
Persistence boundary for extracted loads and broker relationship stats.
The core never talks to a database directly; it goes through LoadStore.

BUSINESS LOGIC:
- Loads are keyed by message id: saving the same message again replaces
  its row
- Broker stats are replaced as a whole, keyed by broker name
- Connectivity problems surface as StoreUnavailableError so the caller can
  retry later; the core never retries on its own

TECHNICAL ARCHITECTURE:
- LoadStore: abstract interface
- InMemoryLoadStore: thread-safe dict-backed store for tests and backfills
- SupabaseLoadStore: Supabase tables `loads` and `broker_stats`

DEPENDENCIES:
- supabase-py for the hosted store
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from supabase import Client, create_client

from broker_intel.config import settings
from broker_intel.exceptions import StoreUnavailableError
from broker_intel.models import BrokerStats, LoadRecord

logger = logging.getLogger(__name__)


class LoadStore(ABC):
    """Storage collaborator for loads and broker stats."""

    @abstractmethod
    def save_load(self, record: LoadRecord) -> None:
        """Insert or replace the load row for record.message_id."""

    @abstractmethod
    def loads_for_broker(self, broker_key: str) -> List[LoadRecord]:
        """Complete load history for one broker."""

    @abstractmethod
    def replace_broker_stats(self, stats: BrokerStats) -> None:
        """Upsert stats, fully replacing any previous row for the broker."""

    @abstractmethod
    def get_broker_stats(self, broker_key: str) -> Optional[BrokerStats]:
        ...

    @abstractmethod
    def list_broker_stats(self) -> List[BrokerStats]:
        ...


class InMemoryLoadStore(LoadStore):
    """Process-local store guarded by a single lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._loads: Dict[str, LoadRecord] = {}
        self._stats: Dict[str, BrokerStats] = {}

    def save_load(self, record: LoadRecord) -> None:
        with self._lock:
            self._loads[record.message_id] = record

    def loads_for_broker(self, broker_key: str) -> List[LoadRecord]:
        with self._lock:
            return [record for record in self._loads.values() if record.broker == broker_key]

    def all_loads(self) -> List[LoadRecord]:
        with self._lock:
            return list(self._loads.values())

    def replace_broker_stats(self, stats: BrokerStats) -> None:
        with self._lock:
            self._stats[stats.broker_key] = stats

    def get_broker_stats(self, broker_key: str) -> Optional[BrokerStats]:
        with self._lock:
            return self._stats.get(broker_key)

    def list_broker_stats(self) -> List[BrokerStats]:
        with self._lock:
            return list(self._stats.values())


class SupabaseLoadStore(LoadStore):
    """
    Supabase-backed store.

    TABLES:
    - loads: one row per LoadRecord, unique on `message_id`
      (column names match LoadRecord.to_dict)
    - broker_stats: one row per broker, unique on `broker`
    """

    def __init__(self, client: Client, loads_table: str = None, stats_table: str = None):
        self.client = client
        self.loads_table = loads_table or settings.LOADS_TABLE
        self.stats_table = stats_table or settings.BROKER_STATS_TABLE

    @classmethod
    def from_settings(cls) -> "SupabaseLoadStore":
        """Build a store from SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY."""
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        return cls(client)

    def _execute(self, operation: str, query):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Supabase {operation} failed: {e}")
            raise StoreUnavailableError(f"Supabase {operation} failed: {e}", operation) from e

    def save_load(self, record: LoadRecord) -> None:
        self._execute(
            "save_load",
            self.client.table(self.loads_table).upsert(record.to_dict(), on_conflict="message_id"),
        )

    def loads_for_broker(self, broker_key: str) -> List[LoadRecord]:
        result = self._execute(
            "loads_for_broker",
            self.client.table(self.loads_table).select("*").eq("broker", broker_key),
        )
        return [LoadRecord.from_dict(row) for row in result.data or []]

    def replace_broker_stats(self, stats: BrokerStats) -> None:
        self._execute(
            "replace_broker_stats",
            self.client.table(self.stats_table).upsert(stats.to_dict(), on_conflict="broker"),
        )

    def get_broker_stats(self, broker_key: str) -> Optional[BrokerStats]:
        result = self._execute(
            "get_broker_stats",
            self.client.table(self.stats_table).select("*").eq("broker", broker_key).limit(1),
        )
        rows = result.data or []
        return BrokerStats.from_dict(rows[0]) if rows else None

    def list_broker_stats(self) -> List[BrokerStats]:
        result = self._execute(
            "list_broker_stats",
            self.client.table(self.stats_table).select("*"),
        )
        return [BrokerStats.from_dict(row) for row in result.data or []]

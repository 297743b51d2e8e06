# --------------------------- broker_intel/services/broker_directory.py ----------------------------
"""
Broker Intelligence · Broker Directory

OVERVIEW:
Registry of known freight brokers keyed by mail domain. Seeded with the major,
regional and digital brokers a small carrier hears from most, and extended at
runtime with operator-supplied brokers.

BUSINESS LOGIC:
- Entries are append-only and never expire
- A domain may only appear once; re-adding an existing domain is a no-op
- One broker may own several domains (ArcBest, Ascent, Parade)

TECHNICAL ARCHITECTURE:
- Explicit instance passed into BrokerIdentifier, not a module global
- Readers get an immutable snapshot tuple, so concurrent reads need no lock
- Appends are serialized with a lock
"""

import logging
import threading
from typing import Iterable, List, Optional, Tuple

from broker_intel.models import BrokerClass, BrokerDirectoryEntry

logger = logging.getLogger(__name__)

_MAJOR = BrokerClass.MAJOR
_REGIONAL = BrokerClass.REGIONAL
_DIGITAL = BrokerClass.DIGITAL

SEED_BROKERS: Tuple[BrokerDirectoryEntry, ...] = (
    # Top 10 Major Brokers (3PLs)
    BrokerDirectoryEntry('C.H. Robinson', 'chrobinson.com', _MAJOR),
    BrokerDirectoryEntry('TQL (Total Quality Logistics)', 'tql.com', _MAJOR),
    BrokerDirectoryEntry('XPO Logistics', 'xpo.com', _MAJOR),
    BrokerDirectoryEntry('Coyote Logistics', 'coyote.com', _MAJOR),
    BrokerDirectoryEntry('Echo Global Logistics', 'echo.com', _MAJOR),
    BrokerDirectoryEntry('Landstar', 'landstar.com', _MAJOR),
    BrokerDirectoryEntry('J.B. Hunt', 'jbhunt.com', _MAJOR),
    BrokerDirectoryEntry('Schneider', 'schneider.com', _MAJOR),
    BrokerDirectoryEntry('Arrive Logistics', 'arrivelogistics.com', _MAJOR),
    BrokerDirectoryEntry('RXO (formerly Coyote)', 'rxo.com', _MAJOR),
    BrokerDirectoryEntry('Crowley', 'crowley.com', _MAJOR),

    # Regional Brokers
    BrokerDirectoryEntry('Worldwide Express', 'wwex.com', _REGIONAL),
    BrokerDirectoryEntry('GlobalTranz', 'globaltranz.com', _REGIONAL),
    BrokerDirectoryEntry('Redwood Logistics', 'redwoodlogistics.com', _REGIONAL),
    BrokerDirectoryEntry('Armstrong Transport', 'armstrongtransport.com', _REGIONAL),
    BrokerDirectoryEntry('Nolan Transportation Group', 'ntgfreight.com', _REGIONAL),
    BrokerDirectoryEntry('Mode Transportation', 'modetransportation.com', _REGIONAL),
    BrokerDirectoryEntry('Mode Global', 'modeglobal.com', _REGIONAL),
    BrokerDirectoryEntry('Capstone Logistics', 'capstonelog.com', _REGIONAL),
    BrokerDirectoryEntry('Covenant Logistics', 'covenantlogistics.com', _REGIONAL),
    BrokerDirectoryEntry('BNSF Logistics', 'bnsflogistics.com', _REGIONAL),
    BrokerDirectoryEntry('Allen Lund Company', 'allenlund.com', _REGIONAL),
    BrokerDirectoryEntry('Tanager Logistics', 'tanagerlogistics.com', _REGIONAL),
    BrokerDirectoryEntry('First Connect Worldwide', 'firstconnectworldwide.com', _REGIONAL),
    BrokerDirectoryEntry('Hub Group', 'hubgroup.com', _REGIONAL),
    BrokerDirectoryEntry('ArcBest Corporation', 'arcb.com', _REGIONAL),
    BrokerDirectoryEntry('ArcBest Corporation', 'arcbestcorp.com', _REGIONAL),
    BrokerDirectoryEntry('ATS Inc.', 'atsinc.com', _REGIONAL),
    BrokerDirectoryEntry('Bay & Bay Transportation', 'bayandbay.com', _REGIONAL),
    BrokerDirectoryEntry('Priority1 Inc.', 'priority1.com', _REGIONAL),
    BrokerDirectoryEntry('Scoular', 'scoular.com', _REGIONAL),
    BrokerDirectoryEntry('Ryan Transportation', 'rtsnational.com', _REGIONAL),
    BrokerDirectoryEntry('PLS Logistics Services', 'plslogistics.com', _REGIONAL),
    BrokerDirectoryEntry('Aloe Logistics', 'aloelogistics.com', _REGIONAL),
    BrokerDirectoryEntry('Ascent Global Logistics', 'ascentgl.com', _REGIONAL),
    BrokerDirectoryEntry('Ascent Global Logistics', 'ascentglobal.com', _REGIONAL),
    BrokerDirectoryEntry('TFS Logistics', 'tfslogistics.com', _REGIONAL),
    BrokerDirectoryEntry('Trinity Logistics', 'trinitylogistics.com', _REGIONAL),
    BrokerDirectoryEntry('KAG Logistics', 'kaglogistics.com', _REGIONAL),

    # Digital Freight Brokers
    BrokerDirectoryEntry('Convoy', 'convoy.com', _DIGITAL),
    BrokerDirectoryEntry('Transfix', 'transfix.io', _DIGITAL),
    BrokerDirectoryEntry('Uber Freight', 'uberfreight.com', _DIGITAL),
    BrokerDirectoryEntry('Loadsmart', 'loadsmart.com', _DIGITAL),
    BrokerDirectoryEntry('Freightos', 'freightos.com', _DIGITAL),
    BrokerDirectoryEntry('Shipwell', 'shipwell.com', _DIGITAL),
    BrokerDirectoryEntry('project44', 'project44.com', _DIGITAL),
    BrokerDirectoryEntry('Parade', 'parade.ai', _DIGITAL),
    BrokerDirectoryEntry('Parade', 'mail.parade.ai', _DIGITAL),
    BrokerDirectoryEntry('Flock Freight', 'flockfreight.com', _DIGITAL),
    BrokerDirectoryEntry('next Trucking', 'nexttrucking.com', _DIGITAL),
)


class BrokerDirectory:
    """
    Append-only broker registry.

    USAGE PATTERNS:
    Created once at startup (normally with the seed list) and shared by every
    BrokerIdentifier in the process.
    """

    def __init__(self, entries: Optional[Iterable[BrokerDirectoryEntry]] = None):
        self._lock = threading.Lock()
        self._entries: Tuple[BrokerDirectoryEntry, ...] = ()
        for entry in (SEED_BROKERS if entries is None else entries):
            self.add_custom_broker(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def entries(self) -> Tuple[BrokerDirectoryEntry, ...]:
        """Snapshot of every entry in insertion order."""
        return self._entries

    def add_custom_broker(self, entry: BrokerDirectoryEntry) -> bool:
        """
        Append a broker unless its domain is already registered.

        RETURNS:
            bool: True if the entry was added
        """
        domain = entry.domain.strip().lower()
        if not domain:
            raise ValueError("Broker domain is required")
        if domain != entry.domain:
            entry = BrokerDirectoryEntry(entry.name, domain, entry.broker_class)

        with self._lock:
            if any(existing.domain == domain for existing in self._entries):
                return False
            self._entries = self._entries + (entry,)

        logger.debug(f"Registered broker {entry.name} ({domain})")
        return True

    def find_by_domain(self, domain: str) -> Optional[BrokerDirectoryEntry]:
        domain = (domain or '').lower()
        for entry in self._entries:
            if entry.domain == domain:
                return entry
        return None

    def all_domains(self) -> List[str]:
        """All known broker domains (useful for mail filters)."""
        return [entry.domain for entry in self._entries]

    def by_class(self, broker_class: BrokerClass) -> List[BrokerDirectoryEntry]:
        return [entry for entry in self._entries if entry.broker_class == broker_class]

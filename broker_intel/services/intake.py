# --------------------------- broker_intel/services/intake.py ----------------------------
"""
Broker Intelligence · Load Intake Pipeline

OVERVIEW:
Runs synced broker emails through the full intelligence pipeline and hands
the results to the store.

WORKFLOW:
1. Normalize subject + body into plain text
2. Identify the broker and extract the load (independent of each other)
3. Score the load against company preferences
4. Save the load attributed to the broker
5. Recompute that broker's relationship stats

BUSINESS LOGIC:
- Messages without a load offer are skipped, never stored
- The broker key is the identified broker name, else a company name found
  in the subject or display name
- Loads without any broker key are stored but update no stats
- One bad message never aborts a batch

TECHNICAL ARCHITECTURE:
- Stages 1-3 are pure and run across a thread pool
- Stats updates are serialized per broker by BrokerStatsService

DEPENDENCIES:
- Any LoadStore implementation (Supabase in production)
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from broker_intel.config import settings
from broker_intel.config.company_preferences import load_company_preferences
from broker_intel.exceptions import StoreError
from broker_intel.models import (
    BrokerIdentification,
    BrokerStats,
    CompanyPreferences,
    ExtractedLoadSignal,
    InboundMessage,
    LoadFitScore,
    LoadRecord,
)
from broker_intel.services.broker_directory import BrokerDirectory
from broker_intel.services.broker_identifier import BrokerIdentifier
from broker_intel.services.broker_stats import BrokerRelationshipAggregator, BrokerStatsService
from broker_intel.services.load_extractor import LoadSignalExtractor
from broker_intel.services.load_scoring import LoadFitScorer
from broker_intel.services.store import LoadStore
from broker_intel.utils.email_parser import extract_broker_name, extract_email_address
from broker_intel.utils.text_normalizer import normalize_message

logger = logging.getLogger(__name__)


class ProcessingStatus(Enum):
    EXTRACTED = "extracted"
    NO_LOAD = "no_load"
    FAILED = "failed"


@dataclass
class ProcessingResult:
    """What happened to one message."""
    message_id: str
    status: ProcessingStatus
    identification: Optional[BrokerIdentification] = None
    signal: Optional[ExtractedLoadSignal] = None
    fit: Optional[LoadFitScore] = None
    record: Optional[LoadRecord] = None
    broker_stats: Optional[BrokerStats] = None
    error: Optional[str] = None
    recoverable: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status != ProcessingStatus.FAILED


class LoadIntakeService:
    """
    Message-to-store orchestrator.

    USAGE PATTERNS:
    ```python
    service = LoadIntakeService(store=SupabaseLoadStore.from_settings())
    results = service.process_batch(messages)
    ```
    """

    def __init__(self, store: LoadStore, prefs: CompanyPreferences = None,
                 directory: BrokerDirectory = None,
                 extractor: LoadSignalExtractor = None,
                 max_workers: int = None):
        self.store = store
        self.prefs = prefs or load_company_preferences()
        self.identifier = BrokerIdentifier(directory)
        self.extractor = extractor or LoadSignalExtractor()
        self.scorer = LoadFitScorer(self.prefs)
        self.stats_service = BrokerStatsService(store, BrokerRelationshipAggregator(self.prefs))
        self.max_workers = max_workers or settings.INTAKE_MAX_WORKERS

    @staticmethod
    def broker_key_for(message: InboundMessage, identification: BrokerIdentification) -> Optional[str]:
        if identification.is_broker and identification.broker_name:
            return identification.broker_name
        return extract_broker_name(message.subject, message.from_display_name)

    def process_message(self, message: InboundMessage, timeout: float = None,
                        cancel_event: Optional[threading.Event] = None) -> ProcessingResult:
        """
        Run one message through the pipeline.

        RETURNS:
            ProcessingResult; failures are reported on the result, not raised
        """
        try:
            text = normalize_message(message.subject, message.body_text, message.body_html)
            sender = extract_email_address(message.from_address)

            identification = self.identifier.identify(sender, message.subject, text)
            signal = self.extractor.extract_message(text, html=message.body_html, from_address=sender)

            if signal is None:
                return ProcessingResult(message.message_id, ProcessingStatus.NO_LOAD,
                                        identification=identification)

            fit = self.scorer.score(signal)
            broker_key = self.broker_key_for(message, identification)
            record = LoadRecord.from_signal(
                message_id=message.message_id,
                signal=signal,
                fit=fit,
                broker=broker_key,
                broker_email=sender or None,
                extracted_at=message.received_at or datetime.now(timezone.utc),
            )
            self.store.save_load(record)
            logger.info(f"Extracted load from {broker_key or 'unknown broker'}: "
                        f"{record.origin} → {record.destination} (Score: {fit.score})")

            stats = None
            if broker_key:
                stats = self.stats_service.update_broker_stats(
                    broker_key, timeout=timeout, cancel_event=cancel_event,
                )

            return ProcessingResult(message.message_id, ProcessingStatus.EXTRACTED,
                                    identification=identification, signal=signal,
                                    fit=fit, record=record, broker_stats=stats)

        except StoreError as e:
            logger.error(f"Store error on message {message.message_id}: {e}")
            return ProcessingResult(message.message_id, ProcessingStatus.FAILED,
                                    error=str(e), recoverable=e.recoverable)
        except Exception as e:
            logger.error(f"Error processing message {message.message_id}: {e}")
            return ProcessingResult(message.message_id, ProcessingStatus.FAILED, error=str(e))

    def process_batch(self, messages: Iterable[InboundMessage], timeout: float = None,
                      cancel_event: Optional[threading.Event] = None) -> List[ProcessingResult]:
        """Process messages in parallel; results come back in input order."""
        messages = list(messages)
        if not messages:
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            results = list(executor.map(
                lambda message: self.process_message(message, timeout=timeout, cancel_event=cancel_event),
                messages,
            ))

        extracted = sum(1 for result in results if result.status == ProcessingStatus.EXTRACTED)
        failed = sum(1 for result in results if result.status == ProcessingStatus.FAILED)
        logger.info(f"Processed {len(results)} messages: {extracted} loads, {failed} failures")
        return results

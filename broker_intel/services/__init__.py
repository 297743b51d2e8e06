# broker_intel/services/__init__.py
"""
Broker Intelligence - Services Package

Broker identification, load extraction, scoring, relationship stats and the
intake pipeline that ties them together.
"""

from .broker_directory import BrokerDirectory, SEED_BROKERS
from .broker_identifier import BrokerIdentifier, is_likely_broker_email
from .load_extractor import LoadSignalExtractor, WeightMode
from .load_scoring import LoadFitScorer, score_load
from .broker_stats import BrokerRelationshipAggregator, BrokerStatsService, relationship_score
from .distance_calculator import DistanceCalculator, estimate_lane_miles
from .store import LoadStore, InMemoryLoadStore, SupabaseLoadStore
from .outreach_targeting import OutreachType, top_outreach_targets
from .intake import LoadIntakeService, ProcessingResult, ProcessingStatus

__all__ = [
    'BrokerDirectory',
    'SEED_BROKERS',
    'BrokerIdentifier',
    'is_likely_broker_email',
    'LoadSignalExtractor',
    'WeightMode',
    'LoadFitScorer',
    'score_load',
    'BrokerRelationshipAggregator',
    'BrokerStatsService',
    'relationship_score',
    'DistanceCalculator',
    'estimate_lane_miles',
    'LoadStore',
    'InMemoryLoadStore',
    'SupabaseLoadStore',
    'OutreachType',
    'top_outreach_targets',
    'LoadIntakeService',
    'ProcessingResult',
    'ProcessingStatus',
]

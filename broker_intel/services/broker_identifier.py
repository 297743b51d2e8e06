# --------------------------- broker_intel/services/broker_identifier.py ----------------------------
"""
Broker Intelligence · Broker Identifier

OVERVIEW:
Decides whether an email sender is a freight broker. Two independent signals
are combined: the sender's mail domain matched against the broker directory,
and freight-specific patterns in the subject and body.

WORKFLOW:
1. Extract the sender domain
2. Score the domain against every directory entry (exact, infra-prefix,
   fuzzy, containment) and keep the best match
3. Fall back to broker-style domain words (logistics, freight, 3pl, ...)
4. Score the content (keywords, subject patterns, states, hub cities)
5. Apply the ordered decision rules

BUSINESS LOGIC:
- Brokers send from subdomains and mail relays (mail.tql.com, send.echo.com)
- Small brokers are unknown to the directory but write unmistakable load emails
- Low-similarity fuzzy matches are rejected rather than guessed

DEPENDENCIES:
- rapidfuzz for Levenshtein edit distance
- BrokerDirectory instance (owned by the caller)
"""

import logging
import re
from typing import Optional, Tuple

from rapidfuzz.distance import Levenshtein

from broker_intel.models import (
    BrokerDirectoryEntry,
    BrokerIdentification,
    ConfidenceTier,
    ContentAnalysis,
)
from broker_intel.services.broker_directory import BrokerDirectory
from broker_intel.services.us_states import US_STATES

logger = logging.getLogger(__name__)

# ╔══════════ 1. Matching Vocabulary ═══════════════════════════════════════

MAIL_INFRA_PREFIX = re.compile(r'^(mail|smtp|email|webmail|mx|send)\.')

FUZZY_MATCH_THRESHOLD = 0.75
CONTAINED_SIMILARITY = 0.85
BASE_NAME_SIMILARITY = 0.8
BASE_NAME_MIN_LENGTH = 5

BROKER_DOMAIN_WORDS = [
    'logistics',
    'freight',
    'transport',
    'shipping',
    'cargo',
    'delivery',
    'carrier',
    'trucking',
    'brokerage',
    'supply-chain',
    'supplychain',
    '3pl',
]

BROKER_KEYWORDS = [
    # Load offers & opportunities
    'load available',
    'load offer',
    'load offers',
    'freight opportunity',
    'available load',
    'hot load',
    'urgent load',
    'load tender',
    'backhaul',
    'deadhead',
    'lane opportunity',
    'dedicated lane',
    'opportunity',

    # Equipment types
    'reefer',
    'dry van',
    'flatbed',
    'step deck',
    'power only',
    'team driver',
    'solo driver',
    'hazmat',

    # Confirmations & documentation
    'rate confirmation',
    'load confirmation',
    'signed rate confirmation',
    'confirmation for load',
    'load status',
    'status update',
    'carrier packet',
    'please provide mc',
    'mc number',
    'dot number',
    'w9 required',
    'insurance certificate',
    'carrier agreement',

    # Scheduling
    'pickup scheduled',
    'delivery scheduled',
    'pick up',
    'pickup:',
    'delivery:',
    'pickup time',
    'delivery time',
    'pickup timing',
    'delivery timing',

    # Load identifiers
    'load #',
    'load#',
    'bol',
    'bill of lading',

    # Pricing
    'rate quote',
    'freight quote',
    'rate per mile',
    'all-in rate',
    'linehaul',

    # Location indicators
    'origin:',
    'destination:',
    'from:',
    'to:',
]

MAJOR_FREIGHT_CITIES = [
    'chicago', 'dallas', 'houston', 'atlanta', 'los angeles', 'phoenix',
    'memphis', 'detroit', 'columbus', 'charlotte', 'indianapolis',
    'seattle', 'denver', 'kansas city', 'nashville', 'miami',
    'san antonio', 'laredo', 'el paso', 'jacksonville', 'cincinnati',
]

BROKER_SUBJECT_PATTERNS = [
    re.compile(r'load\s*#?\d+', re.IGNORECASE),                               # "Load #12345"
    re.compile(r'\w+,?\s+\w+\s+(?:to|→|-+>)\s+\w+,?\s+\w+', re.IGNORECASE),  # "Chicago, IL to Dallas, TX"
    re.compile(r'confirmation\s+for', re.IGNORECASE),
    re.compile(r'rate\s+confirmation', re.IGNORECASE),
    re.compile(r'load\s+status', re.IGNORECASE),
    re.compile(r'freight\s+opportunity', re.IGNORECASE),
    re.compile(r'\d{5,}\s*[-—]\s*\w+', re.IGNORECASE),                       # "123456 - Pickup"
    re.compile(r'pick\s*up', re.IGNORECASE),
    re.compile(r'delivery\s+update', re.IGNORECASE),
]

_STATE_TOKEN = re.compile(r'\b(' + '|'.join(sorted(US_STATES)) + r')\b')

# ╔══════════ 2. String Similarity ═══════════════════════════════════════


def calculate_similarity(first: str, second: str) -> float:
    """
    Similarity between two domains in [0, 1].

    (maxLen - editDistance) / maxLen, except that a string fully contained
    in the other scores a fixed 0.85.
    """
    longer, shorter = (first, second) if len(first) > len(second) else (second, first)
    if first == second:
        return 1.0
    if shorter in longer:
        return CONTAINED_SIMILARITY
    distance = Levenshtein.distance(first, second)
    return (len(longer) - distance) / len(longer)


def confidence_for_similarity(similarity: float) -> ConfidenceTier:
    if similarity >= 0.95:
        return ConfidenceTier.HIGH
    if similarity >= 0.80:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def extract_domain(address: str) -> Optional[str]:
    if not address:
        return None
    match = re.search(r'@([^@\s>]+)$', address.strip().lower().rstrip('>'))
    return match.group(1) if match else None


def format_domain_as_name(domain: str) -> str:
    """Turn 'acme-freight.com' into 'Acme Freight'."""
    name = MAIL_INFRA_PREFIX.sub('', domain)
    name = re.sub(r'\.(com|net|org|io|co|ai|us)$', '', name)
    words = re.split(r'[-_.\s]+', name)
    return ' '.join(word[:1].upper() + word[1:] for word in words if word)


# ╔══════════ 3. Broker Identifier ═══════════════════════════════════════


class BrokerIdentifier:
    """
    Domain + content broker detection.

    ARCHITECTURE ROLE:
    Runs on every synced message next to the load extractor. The result
    decides which broker a load is attributed to.
    """

    def __init__(self, directory: Optional[BrokerDirectory] = None):
        self.directory = directory if directory is not None else BrokerDirectory()

    # ── Domain signal ─────────────────────────────────────────────────

    def _score_entry(self, domain: str, clean_domain: str,
                     entry: BrokerDirectoryEntry) -> Optional[float]:
        """Similarity for one directory entry; the first satisfied rule wins."""
        registry_domain = entry.domain

        if domain == registry_domain or domain.endswith(f".{registry_domain}"):
            return 1.0

        if clean_domain == registry_domain or clean_domain.endswith(f".{registry_domain}"):
            return 0.95

        similarity = calculate_similarity(clean_domain, registry_domain)
        if similarity >= FUZZY_MATCH_THRESHOLD:
            return similarity

        base_name = registry_domain.split('.')[0]
        if len(base_name) >= BASE_NAME_MIN_LENGTH and base_name in domain:
            return BASE_NAME_SIMILARITY

        return None

    def find_matching_broker(self, domain: str) -> Optional[Tuple[BrokerDirectoryEntry, float]]:
        """Best directory match for a domain across the whole registry."""
        clean_domain = MAIL_INFRA_PREFIX.sub('', domain)
        best: Optional[Tuple[BrokerDirectoryEntry, float]] = None

        for entry in self.directory.entries():
            similarity = self._score_entry(domain, clean_domain, entry)
            if similarity is None:
                continue
            if best is None or similarity > best[1]:
                best = (entry, similarity)
                if similarity >= 1.0:
                    break

        return best

    def identify_domain(self, from_address: str) -> BrokerIdentification:
        """Classify a sender address using the domain alone."""
        domain = extract_domain(from_address or '')
        if not domain:
            return BrokerIdentification(is_broker=False, reasoning="No sender domain")

        match = self.find_matching_broker(domain)
        if match:
            entry, similarity = match
            confidence = confidence_for_similarity(similarity)
            if confidence != ConfidenceTier.LOW:
                return BrokerIdentification(
                    is_broker=True,
                    broker_name=entry.name,
                    confidence=confidence,
                    similarity_score=similarity,
                    broker_class=entry.broker_class,
                    reasoning=f"Known broker domain: {entry.name} ({round(similarity * 100)}% match)",
                )
            logger.debug(f"Rejected weak domain match {domain} ~ {entry.domain} ({similarity:.2f})")

        if any(word in domain for word in BROKER_DOMAIN_WORDS):
            return BrokerIdentification(
                is_broker=True,
                broker_name=format_domain_as_name(domain),
                confidence=ConfidenceTier.MEDIUM,
                reasoning=f"Broker-style domain: {domain}",
            )

        return BrokerIdentification(is_broker=False, reasoning=f"Unknown domain: {domain}")

    # ── Content signal ────────────────────────────────────────────────

    def analyze_content(self, subject: str = '', body: str = '') -> ContentAnalysis:
        subject = subject or ''
        body = body or ''
        raw_content = f"{subject} {body}"
        content = raw_content.lower()

        matched_keywords = [keyword for keyword in BROKER_KEYWORDS if keyword in content]
        has_state_references = bool(_STATE_TOKEN.search(raw_content))
        has_city_references = any(city in content for city in MAJOR_FREIGHT_CITIES)
        subject_matches = any(pattern.search(subject) for pattern in BROKER_SUBJECT_PATTERNS)

        score = len(matched_keywords)
        if subject_matches:
            score += 3
        if has_state_references:
            score += 2
        if has_city_references:
            score += 1

        return ContentAnalysis(
            matched_keywords=matched_keywords,
            has_state_references=has_state_references,
            has_city_references=has_city_references,
            subject_matches=subject_matches,
            score=score,
        )

    # ── Combined decision ─────────────────────────────────────────────

    def identify(self, from_address: str, subject: str = '', body: str = '') -> BrokerIdentification:
        """
        Combined domain + content decision.

        Never raises: any unexpected failure is logged and reported as
        "not a broker".
        """
        try:
            domain_check = self.identify_domain(from_address)
            content_check = self.analyze_content(subject, body)
        except Exception as e:
            logger.warning(f"Broker identification failed for {from_address!r}: {e}")
            return BrokerIdentification(is_broker=False, reasoning="Identification error")

        return self._decide(domain_check, content_check)

    def _decide(self, domain: BrokerIdentification, content: ContentAnalysis) -> BrokerIdentification:
        high, medium = ConfidenceTier.HIGH, ConfidenceTier.MEDIUM
        keyword_hits = len(content.matched_keywords)

        if domain.is_broker and domain.confidence == high:
            return domain

        if content.subject_matches and content.score >= 4:
            return self._result(domain, high, f"Strong broker patterns: score {content.score}")

        if content.subject_matches and content.has_state_references and keyword_hits >= 2:
            return self._result(domain, high,
                                f"Broker subject + locations + {keyword_hits} keywords")

        if domain.is_broker and domain.confidence == medium and content.has_broker_keywords:
            return self._result(domain, medium,
                                f"Broker-like domain with {content.score} freight indicators")

        if not domain.is_broker and content.score >= 4:
            return BrokerIdentification(is_broker=True, confidence=medium,
                                        reasoning=f"Strong freight content (score: {content.score})")

        if content.subject_matches and content.score >= 2:
            return BrokerIdentification(is_broker=True, confidence=medium,
                                        reasoning="Broker subject pattern + freight keywords")

        return BrokerIdentification(is_broker=False, reasoning="No strong broker indicators")

    @staticmethod
    def _result(domain: BrokerIdentification, confidence: ConfidenceTier,
                reasoning: str) -> BrokerIdentification:
        return BrokerIdentification(
            is_broker=True,
            broker_name=domain.broker_name,
            confidence=confidence,
            similarity_score=domain.similarity_score,
            broker_class=domain.broker_class,
            reasoning=reasoning,
        )


def is_likely_broker_email(from_address: str, subject: str = '', body: str = '',
                           directory: Optional[BrokerDirectory] = None) -> BrokerIdentification:
    """Convenience wrapper using a seeded directory when none is given."""
    return BrokerIdentifier(directory).identify(from_address, subject, body)

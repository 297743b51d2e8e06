# --------------------------- broker_intel/utils/email_parser.py ----------------------------
"""
Broker Intelligence · Raw Email Parser

OVERVIEW:
Turns a raw RFC 822 message (.eml bytes) into the InboundMessage shape the
intake pipeline consumes, and provides the address helpers used to split a
"Name <address>" header.

WORKFLOW:
1. Detect the byte encoding (chardet) and parse the message structure
2. Decode headers (RFC 2047)
3. Collect the plain text and HTML bodies from multipart messages
4. Hand back an immutable InboundMessage

BUSINESS LOGIC:
- Brokers send from Outlook, Gmail, TMS notification systems and phones
- Load boards frequently send HTML-only mail; the HTML body is kept so the
  normalizer can turn its tables into text
- Company names usually sit in the display name or the subject line

DEPENDENCIES:
- email (standard library)
- chardet for encoding detection
"""

import email
import email.header
import email.utils
import logging
import re
import uuid
from datetime import datetime
from email.message import Message
from typing import Optional, Tuple

import chardet

from broker_intel.models import InboundMessage

logger = logging.getLogger(__name__)

_COMPANY_NAME = r"((?:(?:[A-Z][A-Za-z&\.']*|&)[ \t]+){1,4}(?:Logistics|Freight|Transport(?:ation)?|Shipping|Carriers?)\b)"

BROKER_NAME_PATTERNS = [
    re.compile(r'(?i:from)\s+' + _COMPANY_NAME),
    re.compile(_COMPANY_NAME),
]


class RawEmailParser:
    """
    Parser for raw message bytes coming from file drops or IMAP fetches.

    Body parts that cannot be decoded with their declared charset fall back
    to the detected encoding, then to utf-8 with replacement characters.
    """

    def parse(self, raw_email: bytes, message_id: Optional[str] = None) -> InboundMessage:
        detected = chardet.detect(raw_email) if raw_email else {}
        fallback_encoding = detected.get('encoding') or 'utf-8'

        msg = email.message_from_bytes(raw_email or b'')

        from_header = self._decode_header(msg.get('From', ''))
        subject = self._decode_header(msg.get('Subject', ''))
        body_text, body_html = self._extract_body(msg, fallback_encoding)

        return InboundMessage(
            message_id=message_id or msg.get('Message-ID') or f"<{uuid.uuid4()}@local>",
            from_address=extract_email_address(from_header),
            from_display_name=extract_display_name(from_header),
            subject=subject,
            body_text=body_text or None,
            body_html=body_html,
            snippet=(body_text or '')[:200] or None,
            received_at=self._parse_date(msg.get('Date')),
        )

    def _decode_header(self, value: str) -> str:
        if not value:
            return ''
        parts = []
        for part, encoding in email.header.decode_header(value):
            if isinstance(part, bytes):
                try:
                    part = part.decode(encoding or 'utf-8', errors='replace')
                except LookupError:
                    part = part.decode('utf-8', errors='replace')
            parts.append(str(part))
        return ''.join(parts).strip()

    def _extract_body(self, msg: Message, fallback_encoding: str) -> Tuple[str, Optional[str]]:
        """
        EXTRACTION STRATEGY:
        1. Concatenate every text/plain part
        2. Keep the first text/html part
        3. Skip attachments
        """
        plain_text = ''
        html_content = None

        parts = msg.walk() if msg.is_multipart() else [msg]
        for part in parts:
            if part.get_content_disposition() == 'attachment':
                continue

            content_type = part.get_content_type()
            if content_type not in ('text/plain', 'text/html'):
                continue

            payload = self._decode_payload(part, fallback_encoding)
            if content_type == 'text/plain':
                plain_text += payload + '\n'
            elif html_content is None:
                html_content = payload

        return plain_text.strip(), html_content

    def _decode_payload(self, part: Message, fallback_encoding: str) -> str:
        raw = part.get_payload(decode=True) or b''
        for charset in (part.get_content_charset(), fallback_encoding, 'utf-8'):
            if not charset:
                continue
            try:
                return raw.decode(charset)
            except (LookupError, UnicodeDecodeError):
                continue
        return raw.decode('utf-8', errors='replace')

    def _parse_date(self, value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            return email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            logger.debug(f"Unparseable Date header: {value!r}")
            return None


def parse_raw_email(raw_email: bytes, message_id: Optional[str] = None) -> InboundMessage:
    """Parse raw .eml bytes into an InboundMessage."""
    return RawEmailParser().parse(raw_email, message_id=message_id)


def extract_email_address(from_header: str) -> str:
    """Extract clean email address from From header."""
    if not from_header:
        return ''
    # Pattern to extract email from "Name <email@domain.com>" format
    match = re.search(r'<([^>]+)>', from_header)
    if match:
        return match.group(1).strip().lower()

    match = re.search(r'[\w\.\+-]+@[\w\.-]+\.\w+', from_header)
    if match:
        return match.group(0).lower()

    return from_header.strip().lower()


def extract_display_name(from_header: str) -> Optional[str]:
    """Return the display-name part of a From header, if any."""
    if not from_header or '<' not in from_header:
        return None
    name = from_header.split('<', 1)[0].strip().strip('"').strip()
    return name or None


def extract_broker_name(subject: str, display_name: Optional[str] = None) -> Optional[str]:
    """
    Guess a broker company name from the subject line or sender display name.

    Falls back to the display name when no company-style name is found.
    """
    text = f"{subject or ''} {display_name or ''}"
    for pattern in BROKER_NAME_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return display_name or None

# broker_intel/utils/__init__.py
"""
Broker Intelligence - Utilities Package

Text normalization and raw email helpers used across the pipeline.
"""

from .text_normalizer import normalize, normalize_message, parse_html_table
from .email_parser import (
    RawEmailParser,
    parse_raw_email,
    extract_email_address,
    extract_display_name,
    extract_broker_name,
)

__all__ = [
    'normalize',
    'normalize_message',
    'parse_html_table',
    'RawEmailParser',
    'parse_raw_email',
    'extract_email_address',
    'extract_display_name',
    'extract_broker_name',
]

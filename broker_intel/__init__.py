"""
Broker Intelligence Core

Turns freight-broker email into structured, scored business signals.
"""

__version__ = "0.1.0"

"""Configuration Module"""
from .company_preferences import load_company_preferences, priority_label, relationship_label

__all__ = ["load_company_preferences", "priority_label", "relationship_label"]

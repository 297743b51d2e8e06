# --------------------------- tests/unit/test_broker_directory.py ----------------------------
"""Broker directory: seed data, append-only registration and queries."""

import threading

import pytest

from broker_intel.models import BrokerClass, BrokerDirectoryEntry
from broker_intel.services.broker_directory import SEED_BROKERS, BrokerDirectory


def test_seed_directory(directory):
    assert len(directory) == len(SEED_BROKERS)
    assert directory.find_by_domain("hubgroup.com").name == "Hub Group"
    assert "tql.com" in directory.all_domains()
    assert all(entry.broker_class == BrokerClass.DIGITAL for entry in directory.by_class(BrokerClass.DIGITAL))


def test_duplicate_domain_is_a_no_op(directory):
    before = len(directory)
    added = directory.add_custom_broker(BrokerDirectoryEntry("Other Name", "TQL.com"))

    assert added is False
    assert len(directory) == before
    assert directory.find_by_domain("tql.com").name == "TQL (Total Quality Logistics)"


def test_custom_broker_domain_is_lower_cased():
    directory = BrokerDirectory(entries=[])
    assert directory.add_custom_broker(BrokerDirectoryEntry("Acme", "ACME-Freight.com")) is True
    assert directory.find_by_domain("acme-freight.com").name == "Acme"


def test_empty_domain_is_rejected():
    with pytest.raises(ValueError):
        BrokerDirectory(entries=[]).add_custom_broker(BrokerDirectoryEntry("Nobody", "  "))


def test_concurrent_appends_keep_domains_unique():
    directory = BrokerDirectory(entries=[])

    def register(index):
        directory.add_custom_broker(BrokerDirectoryEntry(f"Broker {index % 10}", f"broker{index % 10}.com"))

    threads = [threading.Thread(target=register, args=(i,)) for i in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(directory) == 10
    assert len(set(directory.all_domains())) == 10


def test_seed_classes(directory):
    assert directory.find_by_domain("crowley.com").broker_class == BrokerClass.MAJOR
    assert directory.find_by_domain("convoy.com").broker_class == BrokerClass.DIGITAL
    assert directory.find_by_domain("hubgroup.com").broker_class == BrokerClass.REGIONAL

#!/usr/bin/env python3
"""
Email Drop Processing Script

Runs saved .eml files through the broker intelligence pipeline and prints
the extracted loads, broker stats and outreach ranking.

USAGE:
    python scripts/process_eml.py inbox/*.eml
    python scripts/process_eml.py inbox/*.eml --store supabase --log-level DEBUG
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from broker_intel.config import priority_label, relationship_label
from broker_intel.config.settings import configure_logging
from broker_intel.services.intake import LoadIntakeService, ProcessingStatus
from broker_intel.services.outreach_targeting import top_outreach_targets
from broker_intel.services.store import InMemoryLoadStore, SupabaseLoadStore
from broker_intel.utils.email_parser import parse_raw_email


def load_messages(paths):
    messages = []
    for path in paths:
        raw = Path(path).read_bytes()
        messages.append(parse_raw_email(raw, message_id=Path(path).stem))
    return messages


def main():
    parser = argparse.ArgumentParser(description="Process broker emails saved as .eml files")
    parser.add_argument("files", nargs="+", help=".eml files to process")
    parser.add_argument("--store", choices=["memory", "supabase"], default="memory",
                        help="Where loads and broker stats are written")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--top", type=int, default=10, help="Outreach targets to list")
    args = parser.parse_args()

    configure_logging(args.log_level)

    store = SupabaseLoadStore.from_settings() if args.store == "supabase" else InMemoryLoadStore()
    service = LoadIntakeService(store)

    results = service.process_batch(load_messages(args.files))

    print("📦 Loads")
    for result in results:
        if result.status == ProcessingStatus.EXTRACTED:
            record = result.record
            print(f"✅ {result.message_id}: {record.origin} → {record.destination} "
                  f"[{record.broker or 'unknown broker'}] "
                  f"{result.fit.score} {priority_label(result.fit.score)} - {result.fit.reason_text}")
        elif result.status == ProcessingStatus.NO_LOAD:
            print(f"➖ {result.message_id}: no load offer")
        else:
            retry = " (retry later)" if result.recoverable else ""
            print(f"❌ {result.message_id}: {result.error}{retry}")

    print("\n🤝 Outreach targets")
    for target in top_outreach_targets(store.list_broker_stats(), limit=args.top):
        stats = target.stats
        print(f"{target.score:5.1f}  {stats.broker_key} "
              f"({relationship_label(stats.relationship_score)}, {stats.total_loads} loads) "
              f"{target.email_type.value}: {target.reasoning}")

    failed = sum(1 for result in results if result.status == ProcessingStatus.FAILED)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())

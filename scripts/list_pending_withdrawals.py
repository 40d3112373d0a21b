"""List withdrawals whose payout outcome is unknown.

A withdrawal is left ``pending`` when the processor call timed out or failed
mid-flight. The balance was not debited; an operator must check the payout in
the FaucetPay dashboard and settle the row by hand.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Print withdrawals stuck in the pending state.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum rows to print (default: 100).",
    )
    return parser.parse_args()


def fetch_pending(limit: int) -> list[dict[str, Any]]:
    """Return pending withdrawal rows, oldest first."""
    if limit <= 0:
        raise ValueError("limit must be >= 1")

    from app.models.withdrawal import WithdrawalStatus
    from app.services.store_service import RewardsStore
    from app.utils.supabase_client import get_service_client

    store = RewardsStore(get_service_client())
    return store.list_withdrawals_by_status(WithdrawalStatus.PENDING.value, limit=limit)


def print_rows(rows: Sequence[dict[str, Any]]) -> None:
    """Print rows in a tab-separated, copy-friendly form."""
    print(f"{len(rows)} pending withdrawal(s):")
    for row in rows:
        print(
            "\t".join(
                str(row.get(key, ""))
                for key in ("id", "user_id", "method", "net_amount", "address", "created_at")
            )
        )


def main() -> None:
    """CLI entry point."""
    args = parse_args()
    print_rows(fetch_pending(args.limit))


if __name__ == "__main__":
    main()

"""Durable profile, transaction, withdrawal and referral storage."""

from __future__ import annotations

from typing import Any

from app.services.common import SupabaseService
from app.utils.time import now_utc
from supabase import Client


class RewardsStore:
    """Read/update/insert access to the Supabase tables backing a ledger."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def fetch_profile(self, user_id: str) -> dict[str, Any]:
        """Return the full profile row for an account."""
        return self.db.select_one("profiles", {"id": user_id}, not_found_label="Profile")

    def fetch_balance(self, user_id: str) -> int:
        """Return the stored balance, the authoritative value for withdrawals."""
        row = self.db.select_one(
            "profiles",
            {"id": user_id},
            columns="balance_satoshi",
            not_found_label="Profile",
        )
        return int(row["balance_satoshi"])

    def update_profile(self, user_id: str, updates: dict[str, Any]) -> list[dict[str, Any]]:
        """Write profile columns and stamp ``updated_at``."""
        payload = {**updates, "updated_at": now_utc().isoformat()}
        return self.db.update("profiles", {"id": user_id}, payload)

    def add_transaction(
        self,
        user_id: str,
        entry_type: str,
        description: str,
        amount: int,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Insert one activity transaction row."""
        payload: dict[str, Any] = {
            "user_id": user_id,
            "type": entry_type,
            "description": description,
            "amount": amount,
        }
        if idempotency_key:
            payload["idempotency_key"] = idempotency_key
        return self.db.insert_one("transactions", payload)

    def list_transactions(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
        """Return the newest transactions first."""
        return self.db.select_many(
            "transactions",
            filters={"user_id": user_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )

    def insert_withdrawal(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Insert one withdrawal audit row."""
        return self.db.insert_one("withdrawals", payload)

    def list_withdrawals(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Return the newest withdrawal attempts first."""
        return self.db.select_many(
            "withdrawals",
            filters={"user_id": user_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )

    def list_referrals(self, user_id: str) -> list[dict[str, Any]]:
        """Return referrals credited to ``user_id`` as the referrer."""
        return self.db.select_many(
            "referrals",
            filters={"referrer_id": user_id},
            order_by="created_at",
            descending=True,
        )

    def list_withdrawals_by_status(self, status: str, limit: int = 100) -> list[dict[str, Any]]:
        """Return withdrawal attempts in ``status`` across all accounts, oldest first."""
        return self.db.select_many(
            "withdrawals",
            filters={"status": status},
            order_by="created_at",
            limit=limit,
        )

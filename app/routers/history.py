"""Stored history endpoints."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_current_account_id, get_store
from app.schemas.history import ReferralResponse, TransactionResponse, WithdrawalHistoryItem
from app.services.store_service import RewardsStore

router = APIRouter()


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    limit: int = Query(default=20, ge=1, le=50),
    account_id: str = Depends(get_current_account_id),
    store: RewardsStore = Depends(get_store),
) -> list[dict]:
    return await asyncio.to_thread(store.list_transactions, account_id, limit)


@router.get("/withdrawals", response_model=list[WithdrawalHistoryItem])
async def list_withdrawals(
    limit: int = Query(default=10, ge=1, le=50),
    account_id: str = Depends(get_current_account_id),
    store: RewardsStore = Depends(get_store),
) -> list[dict]:
    """Return the caller's recent withdrawal attempts, failed ones included."""
    return await asyncio.to_thread(store.list_withdrawals, account_id, limit)


@router.get("/referrals", response_model=list[ReferralResponse])
async def list_referrals(
    account_id: str = Depends(get_current_account_id),
    store: RewardsStore = Depends(get_store),
) -> list[dict]:
    return await asyncio.to_thread(store.list_referrals, account_id)

"""HTTP surface tests with in-memory dependencies."""

from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from fakes import (
    ACCOUNT_ID,
    GOOD_CREDENTIAL,
    FakeAuth,
    FakePayouts,
    FakeScheduler,
    FakeStore,
    FixedRng,
    today,
)

from app.config import settings
from app.dependencies import (
    get_current_account_id,
    get_session_registry,
    get_store,
    get_withdrawal_service,
)
from app.main import app
from app.services.persistence import WriteBehindQueue
from app.services.session_service import SessionRegistry
from app.services.withdrawal_service import WithdrawalService

ADDRESS = "1BoatSLRHtKNngkdXEeobR76b53LETtpyT"


@pytest_asyncio.fixture
async def api():
    store = FakeStore()
    store.add_profile(balance_satoshi=100000, total_earned=100000)
    writer = WriteBehindQueue(backoff_seconds=0)
    scheduler = FakeScheduler()
    registry = SessionRegistry(store, writer, scheduler, today=today, rng=FixedRng())
    payouts = FakePayouts()
    service = WithdrawalService(
        store=store,
        writer=writer,
        authenticate=FakeAuth(),
        payouts=payouts,
        sessions=registry,
    )

    app.dependency_overrides[get_current_account_id] = lambda: ACCOUNT_ID
    app.dependency_overrides[get_session_registry] = lambda: registry
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_withdrawal_service] = lambda: service

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield SimpleNamespace(
            client=client,
            store=store,
            writer=writer,
            scheduler=scheduler,
            payouts=payouts,
        )

    await registry.close_all()
    await writer.stop()
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_account_snapshot(api) -> None:
    response = await api.client.get("/account")

    assert response.status_code == 200
    payload = response.json()
    assert payload["account_id"] == ACCOUNT_ID
    assert payload["balance"] == 100000
    assert payload["mining"]["active"] is False
    assert payload["activities"] == []


@pytest.mark.asyncio
async def test_earn_ad_credits_ledger_and_persists(api) -> None:
    response = await api.client.post("/earn/ad", json={"amount": 25})

    assert response.status_code == 200
    payload = response.json()
    assert payload["activity"]["kind"] == "ad"
    assert payload["activity"]["description"] == "Watched ad (+25 sat)"
    assert payload["ledger"]["balance"] == 100025
    assert payload["ledger"]["ads_watched"] == 1
    assert payload["ledger"]["xp"] == 10

    await api.writer.join()
    assert api.store.profiles[ACCOUNT_ID]["balance_satoshi"] == 100025
    assert api.store.transactions[-1]["type"] == "ad"
    assert api.store.transactions[-1]["amount"] == 25


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", ["video", "mining", "withdraw"])
async def test_earn_rejects_non_creditable_kind(api, kind: str) -> None:
    response = await api.client.post(f"/earn/{kind}", json={"amount": 25})

    assert response.status_code == 422
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_earn_rejects_non_positive_amount(api) -> None:
    response = await api.client.post("/earn/offer", json={"amount": 0})

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_AMOUNT"


@pytest.mark.asyncio
async def test_mining_toggle_round_trip(api) -> None:
    started = await api.client.post("/mining/toggle")
    assert started.status_code == 200
    assert started.json()["active"] is True
    assert f"mining-reward:{ACCOUNT_ID}" in api.scheduler.jobs

    stopped = await api.client.post("/mining/toggle")
    assert stopped.status_code == 200
    assert stopped.json() == {
        "active": False,
        "hash_rate": 0.0,
        "pending": 0,
        "mining_earned": 0,
    }
    assert api.scheduler.jobs == {}


@pytest.mark.asyncio
async def test_withdraw_success(api) -> None:
    response = await api.client.post(
        "/withdraw",
        json={"amount": 50000, "address": ADDRESS, "methodId": "btc"},
        headers={"Authorization": GOOD_CREDENTIAL},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["net_amount"] == 49000
    assert payload["new_balance"] == 50000
    assert api.store.profiles[ACCOUNT_ID]["balance_satoshi"] == 50000

    history = await api.client.get("/history/withdrawals")
    assert history.status_code == 200
    assert [row["status"] for row in history.json()] == ["completed"]


@pytest.mark.asyncio
async def test_withdraw_below_minimum_maps_to_400(api) -> None:
    response = await api.client.post(
        "/withdraw",
        json={"amount": 4000, "address": ADDRESS, "methodId": "faucetpay"},
        headers={"Authorization": GOOD_CREDENTIAL},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert api.payouts.calls == []


@pytest.mark.asyncio
async def test_withdraw_without_credential_is_unauthorized(api) -> None:
    response = await api.client.post(
        "/withdraw",
        json={"amount": 50000, "address": ADDRESS, "methodId": "btc"},
    )

    assert response.status_code == 401
    assert api.store.balance_reads == 0


@pytest.mark.asyncio
async def test_withdraw_refused_without_processor_credentials(api, monkeypatch) -> None:
    monkeypatch.setattr(settings, "faucetpay_api_key", "")

    response = await api.client.post(
        "/withdraw",
        json={"amount": 50000, "address": ADDRESS, "methodId": "btc"},
        headers={"Authorization": GOOD_CREDENTIAL},
    )

    assert response.status_code == 500
    assert response.json()["error"] == "Server configuration error. Contact admin."
    assert api.payouts.calls == []


@pytest.mark.asyncio
async def test_withdraw_methods_list(api) -> None:
    response = await api.client.get("/withdraw/methods")

    assert response.status_code == 200
    methods = {row["method_id"]: row for row in response.json()}
    assert methods["btc"] == {"method_id": "btc", "currency": "btc", "fee": 1000, "minimum": 50000}
    assert methods["faucetpay"]["fee"] == 0


@pytest.mark.asyncio
async def test_refresh_reloads_stored_balance(api) -> None:
    await api.client.get("/account")
    api.store.profiles[ACCOUNT_ID]["balance_satoshi"] = 123456

    response = await api.client.post("/account/refresh")

    assert response.status_code == 200
    assert response.json()["balance"] == 123456

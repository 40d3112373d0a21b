"""FaucetPay payout client."""

from __future__ import annotations

import logging

import httpx

from app.models.withdrawal import PayoutResult
from app.utils.errors import PayoutTransportError

logger = logging.getLogger(__name__)

SUCCESS_STATUS = 200


class FaucetPayClient:
    """Submit one payment per call to the FaucetPay ``send`` endpoint."""

    def __init__(self, api_key: str, base_url: str, http: httpx.AsyncClient) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http = http

    async def send(self, amount: int, address: str, currency: str) -> PayoutResult:
        """Pay ``amount`` satoshi of ``currency`` to ``address``.

        Never retried here. Transport failures raise PayoutTransportError;
        a response whose JSON ``status`` is not 200 is a rejection.
        """
        form = {
            "api_key": self.api_key,
            "amount": str(amount),
            "to": address,
            "currency": currency,
        }
        try:
            response = await self.http.post(f"{self.base_url}/send", data=form)
        except httpx.ConnectError as exc:
            logger.warning("FaucetPay connection failed: %s", exc)
            raise PayoutTransportError(outcome_unknown=False) from exc
        except httpx.HTTPError as exc:
            logger.error("FaucetPay request outcome unknown: %s", exc)
            raise PayoutTransportError(outcome_unknown=True) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("FaucetPay returned non-JSON body (HTTP %s)", response.status_code)
            raise PayoutTransportError(outcome_unknown=True) from exc
        if not isinstance(payload, dict):
            logger.error("FaucetPay returned a non-object body (HTTP %s)", response.status_code)
            raise PayoutTransportError(outcome_unknown=True)

        status = payload.get("status")
        if status != SUCCESS_STATUS:
            return PayoutResult(
                success=False,
                code=int(status) if isinstance(status, int) else None,
                message=payload.get("message"),
            )

        reference = payload.get("payout_id") or payload.get("payout_user_hash")
        return PayoutResult(
            success=True,
            reference=str(reference) if reference else None,
            code=status,
            message=payload.get("message"),
        )

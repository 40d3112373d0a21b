"""Withdrawal settlement: validate, authenticate, verify, check, pay, reconcile."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

from pydantic import BaseModel

from app.models.ledger import ActivityEvent, ActivityKind
from app.models.withdrawal import (
    PAYOUT_METHODS,
    PayoutMethod,
    PayoutResult,
    WithdrawalRecord,
    WithdrawalStatus,
)
from app.services.persistence import WriteBehindQueue
from app.services.session_service import SessionRegistry
from app.services.store_service import RewardsStore
from app.utils.errors import (
    AmountTooSmallAfterFeeError,
    BelowMinimumError,
    ConflictError,
    InsufficientBalanceError,
    InvalidInputError,
    PayoutTransportError,
    ProcessorRejectedError,
    ProofFailedError,
    ProofRequiredError,
)
from app.utils.time import epoch_millis, now_utc

logger = logging.getLogger(__name__)

MIN_ADDRESS_LENGTH = 10

PROVIDER_MESSAGES = {
    456: (
        "FaucetPay: Insufficient balance in the faucet. "
        "Please try again later or contact admin."
    ),
    401: "FaucetPay: Invalid API credentials. Contact admin.",
    402: "FaucetPay: Invalid wallet address. Please check your address.",
    403: (
        "FaucetPay: Address not registered on FaucetPay. "
        "Please register at faucetpay.io first."
    ),
    404: "FaucetPay: This currency is not supported.",
    405: "FaucetPay: Amount is below the minimum allowed.",
}


class PayoutClient(Protocol):
    async def send(self, amount: int, address: str, currency: str) -> PayoutResult: ...


class ProofVerifier(Protocol):
    async def verify(self, token: str) -> bool: ...


class WithdrawalQuote(BaseModel):
    """Amounts fixed once the balance check passes."""

    method: PayoutMethod
    amount: int
    fee: int
    net_amount: int
    balance: int


def provider_message(code: int | None, raw_message: str | None) -> str:
    """Return the user-facing message for a processor error code."""
    if code in PROVIDER_MESSAGES:
        return PROVIDER_MESSAGES[code]
    return raw_message or "Payment failed"


class RequestIdCache:
    """Remember client request ids for a fixed window."""

    def __init__(self, ttl_seconds: int, max_entries: int = 10000) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, max_entries)
        self._entries: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()

    def claim(self, account_id: str, request_id: str) -> bool:
        """Return False when the id was already seen inside the window."""
        key = (account_id, request_id)
        now = time.monotonic()
        with self._lock:
            expires_at = self._entries.get(key)
            if expires_at is not None and expires_at > now:
                return False
            if len(self._entries) >= self.max_entries:
                oldest_key = next(iter(self._entries))
                self._entries.pop(oldest_key, None)
            self._entries[key] = now + self.ttl_seconds
            return True

    def release(self, account_id: str, request_id: str) -> None:
        """Forget a claimed id so the client may retry with it."""
        with self._lock:
            self._entries.pop((account_id, request_id), None)


class WithdrawalService:
    """Turn one withdrawal request into a completed payment or a recorded failure.

    The balance is only debited after the processor confirms payment. Every
    attempt that reaches the processor leaves exactly one audit record.
    """

    def __init__(
        self,
        store: RewardsStore,
        writer: WriteBehindQueue,
        authenticate: Callable[[str | None], str],
        payouts: PayoutClient,
        verifier: ProofVerifier | None = None,
        sessions: SessionRegistry | None = None,
        request_ids: RequestIdCache | None = None,
    ) -> None:
        self.store = store
        self.writer = writer
        self.authenticate = authenticate
        self.payouts = payouts
        self.verifier = verifier
        self.sessions = sessions
        self.request_ids = request_ids or RequestIdCache(ttl_seconds=600)
        self._in_flight: set[str] = set()

    async def settle(
        self,
        credential: str | None,
        amount: Any,
        address: Any,
        method_id: Any,
        proof_token: str | None = None,
        request_id: str | None = None,
    ) -> dict[str, Any]:
        """Run the full pipeline and return the success payload."""
        method, address = self.validate(amount, address, method_id)
        account_id = await asyncio.to_thread(self.authenticate, credential)

        if request_id and not self.request_ids.claim(account_id, request_id):
            raise ConflictError("Duplicate withdrawal request", code="DUPLICATE_REQUEST")
        if account_id in self._in_flight:
            if request_id:
                self.request_ids.release(account_id, request_id)
            raise ConflictError(
                "A withdrawal is already being processed", code="WITHDRAWAL_IN_PROGRESS"
            )

        self._in_flight.add(account_id)
        # A payment already sent cannot be taken back, so a cancelled request
        # still runs settlement to the end and leaves its audit record.
        return await asyncio.shield(
            self._settle_claimed(account_id, method, amount, address, proof_token, request_id)
        )

    async def _settle_claimed(
        self,
        account_id: str,
        method: PayoutMethod,
        amount: int,
        address: str,
        proof_token: str | None,
        request_id: str | None,
    ) -> dict[str, Any]:
        submitted = False
        try:
            await self.check_proof(proof_token)
            balance = await asyncio.to_thread(self.store.fetch_balance, account_id)
            quote = self.check_balance(method, amount, balance)
            record = WithdrawalRecord(
                account_id=account_id,
                method=method.currency.upper(),
                requested_amount=quote.amount,
                fee=quote.fee,
                net_amount=quote.net_amount,
                address=address,
            )
            submitted = True
            result = await self.submit(record, method)
            if not result.success:
                await self.reject(record, result)
            return await self.complete(record, quote, result)
        except Exception:
            # nothing reached the processor, so the id may be reused
            if request_id and not submitted:
                self.request_ids.release(account_id, request_id)
            raise
        finally:
            self._in_flight.discard(account_id)

    @staticmethod
    def validate(amount: Any, address: Any, method_id: Any) -> tuple[PayoutMethod, str]:
        """Check the request shape before anything external is touched."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidInputError("Invalid amount")
        if not isinstance(address, str) or len(address.strip()) < MIN_ADDRESS_LENGTH:
            raise InvalidInputError("Invalid wallet address")
        method = PAYOUT_METHODS.get(str(method_id or "").lower())
        if method is None:
            raise InvalidInputError("Invalid withdrawal method")
        return method, address.strip()

    async def check_proof(self, proof_token: str | None) -> None:
        if self.verifier is None:
            return
        if not proof_token:
            raise ProofRequiredError()
        if not await self.verifier.verify(proof_token):
            raise ProofFailedError()

    @staticmethod
    def check_balance(method: PayoutMethod, amount: int, balance: int) -> WithdrawalQuote:
        """Check the stored balance, the method minimum and the net amount."""
        if balance < amount:
            raise InsufficientBalanceError(required=amount, available=balance)
        if amount < method.minimum:
            raise BelowMinimumError(method.minimum, method.method_id)
        net_amount = amount - method.fee
        if net_amount <= 0:
            raise AmountTooSmallAfterFeeError()
        return WithdrawalQuote(
            method=method,
            amount=amount,
            fee=method.fee,
            net_amount=net_amount,
            balance=balance,
        )

    async def submit(self, record: WithdrawalRecord, method: PayoutMethod) -> PayoutResult:
        """Call the processor once; an unclear outcome is recorded, not guessed."""
        try:
            return await self.payouts.send(record.net_amount, record.address, method.currency)
        except PayoutTransportError as exc:
            if exc.outcome_unknown:
                logger.error(
                    "Withdrawal %s for %s has unknown outcome; left pending",
                    record.id,
                    record.account_id,
                )
                status = WithdrawalStatus.PENDING
            else:
                status = WithdrawalStatus.FAILED
            await self._write_record(record.model_copy(update={"status": status}))
            raise

    async def reject(self, record: WithdrawalRecord, result: PayoutResult) -> None:
        """Record a declined payment and raise the sanitized error."""
        failed = record.model_copy(update={"status": WithdrawalStatus.FAILED})
        await self._write_record(failed)
        logger.warning(
            "Withdrawal %s rejected by processor (code %s): %s",
            record.id,
            result.code,
            result.message,
        )
        raise ProcessorRejectedError(provider_message(result.code, result.message), result.code)

    async def complete(
        self, record: WithdrawalRecord, quote: WithdrawalQuote, result: PayoutResult
    ) -> dict[str, Any]:
        """Debit the full requested amount and write the audit trail."""
        reference = result.reference or f"FP-{epoch_millis()}"
        completed = record.model_copy(
            update={
                "status": WithdrawalStatus.COMPLETED,
                "external_reference": reference,
                "processed_at": now_utc(),
            }
        )
        currency = quote.method.currency.upper()
        description = (
            f"Withdrawal: {quote.amount:,} sat via {currency} (Fee: {quote.fee} sat)"
        )
        event = ActivityEvent(
            kind=ActivityKind.WITHDRAW, amount=quote.amount, description=description
        )

        # The debit is queued and mirrored into the live session in one step so
        # later snapshot writes from that session already include it.
        session = self.sessions.find(record.account_id) if self.sessions else None
        if session is not None:
            session.ledger.debit_withdrawal(
                quote.amount, event, floor=quote.balance - quote.amount
            )
            new_balance = session.ledger.balance
        else:
            new_balance = quote.balance - quote.amount

        account_id = record.account_id
        writes = [
            self.writer.submit(
                f"profile:{account_id}",
                lambda _token: self.store.update_profile(
                    account_id, {"balance_satoshi": new_balance}
                ),
            ),
            self._queue_record(completed),
            self.writer.submit(
                f"transaction:{account_id}",
                lambda token: self.store.add_transaction(
                    account_id,
                    ActivityKind.WITHDRAW.value,
                    description,
                    quote.amount,
                    idempotency_key=token,
                ),
            ),
        ]
        results = await asyncio.gather(*writes)
        if not all(results):
            logger.error(
                "Withdrawal %s was paid but its ledger writes did not all land", record.id
            )

        return {
            "success": True,
            "message": f"Successfully sent {quote.net_amount:,} sat to {record.address}",
            "tx_hash": reference,
            "net_amount": quote.net_amount,
            "fee": quote.fee,
            "currency": currency,
            "new_balance": new_balance,
        }

    def _queue_record(self, record: WithdrawalRecord) -> asyncio.Future:
        row = record.to_row()
        return self.writer.submit(
            f"withdrawal:{record.id}",
            lambda _token: self.store.insert_withdrawal(row),
        )

    async def _write_record(self, record: WithdrawalRecord) -> None:
        if not await self._queue_record(record):
            logger.error("Could not store %s withdrawal %s", record.status, record.id)

"""Async PayU API wrapper: signed payment requests and status verification."""

import enum
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from campsite_admin.config import Settings
from campsite_admin.schemas.booking import PaymentData

logger = logging.getLogger(__name__)

PAYU_TXN_PREFIX = "PAYU"

# Field limits documented by PayU for the hosted checkout form.
MAX_PRODUCTINFO_LENGTH = 100
MAX_FIRSTNAME_LENGTH = 60
MAX_EMAIL_LENGTH = 50
MAX_PHONE_DIGITS = 10

VERIFY_COMMAND = "verify_payment"


class PaymentOutcome(str, enum.Enum):
    """Normalized gateway settlement status."""

    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    INDETERMINATE = "indeterminate"  # no usable answer from the gateway


class PaymentGatewayError(Exception):
    """The gateway could not be reached or returned an unusable response."""


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one status-check call for a transaction."""

    txnid: str
    outcome: PaymentOutcome
    transaction: dict[str, Any] = field(default_factory=dict)
    raw: Any = None
    error: str | None = None

    @property
    def is_definitive(self) -> bool:
        return self.outcome is not PaymentOutcome.INDETERMINATE

    @property
    def gateway_status(self) -> str | None:
        return self.transaction.get("status")


def normalize_gateway_status(raw_status: str | None) -> PaymentOutcome:
    """Map PayU's raw status strings onto success / failed / pending."""
    status = (raw_status or "").strip().lower()
    if status == "success":
        return PaymentOutcome.SUCCESS
    if status in ("failure", "failed"):
        return PaymentOutcome.FAILED
    return PaymentOutcome.PENDING


def _sha512(value: str) -> str:
    return hashlib.sha512(value.encode("utf-8")).hexdigest()


def _digits(value: str | None) -> str:
    return "".join(ch for ch in (value or "") if ch.isdigit())


class PayUClient:
    """Builds signed checkout payloads and queries PayU for settlement status.

    Pass ``http_client`` to reuse a connection pool (or a mock transport in
    tests); otherwise a short-lived client is opened per verification call.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._http_client = http_client

    @property
    def checkout_url(self) -> str:
        return f"{self._settings.payu_base_url.rstrip('/')}/_payment"

    def callback_url(self, txnid: str) -> str:
        return f"{self._settings.admin_base_url.rstrip('/')}/api/v1/bookings/verify/{txnid}"

    def payment_hash(
        self,
        txnid: str,
        amount: str,
        productinfo: str,
        firstname: str,
        email: str,
    ) -> str:
        """SHA-512 over ``key|txnid|amount|productinfo|firstname|email|udf1..udf5||||||salt``.

        The five user-defined fields are always empty and are followed by five
        empty reserved slots, i.e. six pipes between udf5 and the salt.
        """
        udfs = [""] * 5
        reserved = [""] * 5
        parts = [
            self._settings.payu_merchant_key,
            txnid,
            amount,
            productinfo,
            firstname,
            email,
            *udfs,
            *reserved,
            self._settings.payu_merchant_salt,
        ]
        return _sha512("|".join(parts))

    def build_payment_request(
        self,
        txnid: str,
        amount: str,
        productinfo: str,
        firstname: str,
        email: str,
        phone: str,
    ) -> PaymentData:
        """Truncate payer fields to PayU's limits and sign the checkout payload."""
        productinfo = productinfo[:MAX_PRODUCTINFO_LENGTH]
        firstname = firstname[:MAX_FIRSTNAME_LENGTH]
        email = email[:MAX_EMAIL_LENGTH]

        callback = self.callback_url(txnid)
        return PaymentData(
            key=self._settings.payu_merchant_key,
            txnid=txnid,
            amount=amount,
            productinfo=productinfo,
            firstname=firstname,
            email=email,
            phone=_digits(phone)[:MAX_PHONE_DIGITS],
            surl=callback,
            furl=callback,
            hash=self.payment_hash(txnid, amount, productinfo, firstname, email),
            currency=self._settings.payu_currency,
        )

    def verify_hash(self, txnid: str) -> str:
        return _sha512(
            "|".join(
                [
                    self._settings.payu_merchant_key,
                    VERIFY_COMMAND,
                    txnid,
                    self._settings.payu_merchant_salt,
                ]
            )
        )

    async def _post_verify(self, txnid: str) -> Any:
        form = {
            "key": self._settings.payu_merchant_key,
            "command": VERIFY_COMMAND,
            "var1": txnid,
            "hash": self.verify_hash(txnid),
        }
        timeout = httpx.Timeout(self._settings.payu_timeout_seconds)
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self._settings.payu_verify_url, data=form, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(self._settings.payu_verify_url, data=form)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"PayU verification request failed: {e}") from e
        except ValueError as e:
            raise PaymentGatewayError("PayU verification returned a non-JSON body") from e

    async def verify_payment(self, txnid: str) -> VerificationResult:
        """Ask PayU for the settled status of ``txnid``.

        Never raises for gateway problems: transport errors, timeouts, and
        responses without details for this transaction come back as an
        ``INDETERMINATE`` result so callers can keep the last known state.
        """
        logger.info("Verifying PayU transaction %s", txnid)
        try:
            payload = await self._post_verify(txnid)
        except PaymentGatewayError as e:
            logger.warning("PayU verification failed for %s: %s", txnid, e)
            return VerificationResult(txnid=txnid, outcome=PaymentOutcome.INDETERMINATE, error=str(e))

        details = payload.get("transaction_details") if isinstance(payload, dict) else None
        transaction = details.get(txnid) if isinstance(details, dict) else None
        if not isinstance(transaction, dict):
            logger.warning("PayU verification returned no transaction details for %s", txnid)
            return VerificationResult(
                txnid=txnid,
                outcome=PaymentOutcome.INDETERMINATE,
                raw=payload,
                error="PayU verification returned no data",
            )

        outcome = normalize_gateway_status(transaction.get("status"))
        logger.info("PayU reports %r for %s (normalized: %s)", transaction.get("status"), txnid, outcome.value)
        return VerificationResult(txnid=txnid, outcome=outcome, transaction=transaction, raw=payload)

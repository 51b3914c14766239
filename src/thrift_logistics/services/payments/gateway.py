"""HTTP client for the Paystack-style charge gateway."""

from __future__ import annotations

import enum
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Any, Protocol, Sequence

import httpx

from ...config import settings

logger = logging.getLogger(__name__)


class ChargeStatus(str, enum.Enum):
    SUCCESS = "success"
    DECLINED = "declined"
    PENDING = "pending"
    NOT_FOUND = "not_found"


_DECLINED_STATES = {"failed", "reversed", "abandoned"}


class GatewayError(Exception):
    """The gateway rejected the call or could not be reached before sending."""


class GatewayTimeout(GatewayError):
    """The call timed out after it may have reached the gateway: outcome unknown."""


@dataclass(slots=True)
class TransactionInit:
    reference: str
    authorization_url: str | None
    access_code: str | None


@dataclass(slots=True)
class ChargeResult:
    reference: str
    status: ChargeStatus
    amount: Decimal | None = None
    authorization_code: str | None = None
    reusable: bool = False
    gateway_response: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is ChargeStatus.SUCCESS


class ChargeGateway(Protocol):
    def initialize_transaction(
        self,
        email: str,
        amount: Decimal,
        reference: str,
        metadata: dict[str, Any] | None = None,
        channels: Sequence[str] | None = None,
    ) -> TransactionInit: ...

    def verify_transaction(self, reference: str) -> ChargeResult: ...

    def charge_authorization(
        self, authorization_code: str, email: str, amount: Decimal, reference: str
    ) -> ChargeResult: ...


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(value: Any) -> Decimal | None:
    if value is None:
        return None
    return (Decimal(str(value)) / 100).quantize(Decimal("0.01"))


def parse_charge(reference: str, data: dict[str, Any]) -> ChargeResult:
    raw_status = str(data.get("status") or "").lower()
    if raw_status == "success":
        status = ChargeStatus.SUCCESS
    elif raw_status in _DECLINED_STATES:
        status = ChargeStatus.DECLINED
    else:
        status = ChargeStatus.PENDING
    authorization = data.get("authorization") or {}
    return ChargeResult(
        reference=str(data.get("reference") or reference),
        status=status,
        amount=from_minor_units(data.get("amount")),
        authorization_code=authorization.get("authorization_code"),
        reusable=bool(authorization.get("reusable", False)),
        gateway_response=data.get("gateway_response") or data.get("message"),
    )


class PaystackClient:
    def __init__(
        self,
        base_url: str | None = None,
        secret_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.paystack_base_url).rstrip("/")
        self.secret_key = secret_key or settings.paystack_secret_key
        if not self.secret_key:
            raise ValueError("Payment gateway secret key is not configured.")
        self.timeout = timeout if timeout is not None else settings.gateway_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.gateway_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.gateway_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            headers={"Authorization": f"Bearer {self.secret_key}"},
            transport=self._transport,
        )

    def _post_once(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Single POST; never retried because the gateway may already have acted on it."""
        with self._get_client() as client:
            try:
                response = client.post(path, json=payload)
            except httpx.ConnectError as exc:
                raise GatewayError(f"Payment gateway unreachable: {exc}") from exc
            except httpx.TimeoutException as exc:
                raise GatewayTimeout(f"Payment gateway timed out on {path}") from exc
            except httpx.HTTPError as exc:
                raise GatewayTimeout(f"Payment gateway call to {path} failed mid-flight: {exc}") from exc
        return self._decode(response, path)

    def _decode(self, response: httpx.Response, path: str) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise GatewayError(f"Payment gateway returned a non-JSON response on {path}") from exc
        if response.status_code >= 500:
            raise GatewayError(f"Payment gateway error {response.status_code} on {path}")
        return body

    def initialize_transaction(
        self,
        email: str,
        amount: Decimal,
        reference: str,
        metadata: dict[str, Any] | None = None,
        channels: Sequence[str] | None = None,
    ) -> TransactionInit:
        body = self._post_once(
            "/transaction/initialize",
            {
                "email": email,
                "amount": to_minor_units(amount),
                "currency": settings.currency,
                "reference": reference,
                "callback_url": settings.payment_callback_url,
                "metadata": metadata or {},
                "channels": list(channels or ("card", "mobile_money")),
            },
        )
        if not body.get("status"):
            raise GatewayError(body.get("message") or "Failed to initialize payment")
        data = body.get("data") or {}
        return TransactionInit(
            reference=str(data.get("reference") or reference),
            authorization_url=data.get("authorization_url"),
            access_code=data.get("access_code"),
        )

    def verify_transaction(self, reference: str) -> ChargeResult:
        """Look up a transaction; safe to retry since it only reads."""
        path = f"/transaction/verify/{reference}"
        attempt = 0
        client = self._get_client()
        try:
            while True:
                try:
                    response = client.get(path)
                    if response.status_code == 404:
                        return ChargeResult(reference=reference, status=ChargeStatus.NOT_FOUND)
                    body = self._decode(response, path)
                    if not body.get("status"):
                        message = body.get("message") or "Transaction not found"
                        return ChargeResult(
                            reference=reference, status=ChargeStatus.NOT_FOUND, gateway_response=message
                        )
                    return parse_charge(reference, body.get("data") or {})
                except (httpx.TimeoutException, httpx.NetworkError, GatewayError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        if isinstance(exc, httpx.TimeoutException):
                            raise GatewayTimeout(f"Verification of {reference} timed out") from exc
                        if isinstance(exc, GatewayError):
                            raise
                        raise GatewayError(f"Payment gateway unreachable: {exc}") from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"Gateway verify failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}"
                    )
                    time.sleep(wait_time)
        finally:
            client.close()

    def charge_authorization(
        self, authorization_code: str, email: str, amount: Decimal, reference: str
    ) -> ChargeResult:
        body = self._post_once(
            "/transaction/charge_authorization",
            {
                "authorization_code": authorization_code,
                "email": email,
                "amount": to_minor_units(amount),
                "currency": settings.currency,
                "reference": reference,
            },
        )
        if not body.get("status"):
            return ChargeResult(
                reference=reference,
                status=ChargeStatus.DECLINED,
                gateway_response=body.get("message") or "Charge declined",
            )
        return parse_charge(reference, body.get("data") or {})


def verify_webhook_signature(payload: bytes, signature: str | None, secret: str | None = None) -> bool:
    """Check the HMAC-SHA512 signature the gateway puts on webhook bodies."""
    secret = secret or settings.paystack_secret_key
    if not secret or not signature:
        return False
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()
    return hmac.compare_digest(digest, signature)


@lru_cache()
def get_gateway() -> ChargeGateway:
    return PaystackClient()

"""
Razorpay payment gateway client over the REST API (HTTP basic auth).

Amounts cross this boundary in rupees (Decimal) and are sent in paise.
Transport failures and non-2xx responses raise PaymentGatewayError; no retries.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)


def to_paise(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class VerificationResult:
    valid: bool
    error: Optional[str] = None
    payment_details: Optional[Dict[str, Any]] = None


class RazorpayGateway:
    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        base_url: str = "https://api.razorpay.com/v1",
        currency: str = "INR",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.currency = currency
        self.timeout = timeout
        self._transport = transport

    def _ensure_configured(self) -> None:
        if not self.key_id or not self.key_secret:
            raise PaymentGatewayError("Payment gateway credentials are not configured")

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        self._ensure_configured()
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.key_id, self.key_secret),
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                logger.error("Razorpay %s %s failed: %s", method, path, e)
                raise PaymentGatewayError(f"Payment gateway unavailable: {e.__class__.__name__}") from e

        if response.status_code >= 400:
            description = None
            try:
                description = response.json().get("error", {}).get("description")
            except ValueError:
                pass
            logger.error("Razorpay %s %s returned %s: %s", method, path, response.status_code, description)
            raise PaymentGatewayError(description or f"Payment gateway error ({response.status_code})")
        return response.json()

    async def create_order(self, amount: Decimal, receipt: str, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        if amount is None or Decimal(amount) <= 0:
            raise PaymentGatewayError("Amount must be greater than 0")
        if not receipt:
            raise PaymentGatewayError("Receipt is required")
        order = await self._request(
            "POST",
            "/orders",
            json={
                "amount": to_paise(amount),
                "currency": self.currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )
        logger.info("Razorpay order created: %s (receipt=%s)", order.get("id"), receipt)
        return order

    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        if not payment_id:
            raise PaymentGatewayError("Payment ID is required")
        return await self._request("GET", f"/payments/{payment_id}")

    async def fetch_order_payments(self, order_id: str) -> List[Dict[str, Any]]:
        body = await self._request("GET", f"/orders/{order_id}/payments")
        return body.get("items", [])

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256 of "order_id|payment_id" keyed with the secret, hex encoded."""
        self._ensure_configured()
        expected = hmac.new(
            self.key_secret.encode("utf-8"),
            f"{order_id}|{payment_id}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature or "")

    async def verify_payment(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
        amount: Optional[Decimal] = None,
    ) -> VerificationResult:
        """Signature, then captured status, then amount. Gateway transport errors propagate."""
        if not self.verify_signature(order_id, payment_id, signature):
            return VerificationResult(valid=False, error="Invalid payment signature")

        details = await self.fetch_payment(payment_id)
        if details.get("status") != "captured":
            return VerificationResult(
                valid=False,
                error=f"Payment not captured. Status: {details.get('status')}",
                payment_details=details,
            )
        if amount is not None and details.get("amount") != to_paise(amount):
            return VerificationResult(valid=False, error="Amount mismatch", payment_details=details)
        return VerificationResult(valid=True, payment_details=details)


_gateway: Optional[RazorpayGateway] = None


def get_payment_gateway() -> RazorpayGateway:
    """FastAPI dependency; tests override it with a fake gateway."""
    global _gateway
    if _gateway is None:
        _gateway = RazorpayGateway(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            base_url=settings.razorpay_base_url,
            currency=settings.payment_currency,
            timeout=settings.gateway_timeout_seconds,
        )
    return _gateway

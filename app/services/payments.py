"""Payment collaborator.

``StripeCheckoutClient`` talks to the Stripe REST API directly: ``charge``
creates a Checkout Session the customer is redirected to, and ``verify``
reads its ``payment_status`` back. ``OfflinePaymentClient`` is used when the
fare is paid to the driver; it settles immediately.
"""
import logging
import uuid
from typing import Dict, Optional, Protocol

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.core.enums import PaymentStatus
from app.core.errors import PaymentDeclined, PaymentProviderUnavailable
from app.core.metrics import track_collaborator

logger = logging.getLogger(__name__)


class PaymentConfirmation(BaseModel):
    id: str
    status: PaymentStatus
    redirect_url: Optional[str] = None


class PaymentClient(Protocol):
    settles_offline: bool

    async def charge(self, amount_minor: int, currency: str, metadata: Dict[str, str]) -> PaymentConfirmation: ...

    async def verify(self, confirmation_id: str) -> PaymentStatus: ...


def _form_encode(metadata: Dict[str, str], prefix: str) -> Dict[str, str]:
    return {f"{prefix}[{key}]": str(value) for key, value in metadata.items() if value is not None}


class StripeCheckoutClient:
    settles_offline = False

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.success_url = success_url or settings.PAYMENT_SUCCESS_URL
        self.cancel_url = cancel_url or settings.PAYMENT_CANCEL_URL
        self.client = httpx.AsyncClient(
            base_url=base_url or settings.STRIPE_API_URL,
            timeout=timeout or settings.PAYMENT_TIMEOUT,
            headers={"Authorization": f"Bearer {secret_key or settings.STRIPE_SECRET_KEY}"},
            transport=transport,
        )

    async def aclose(self):
        await self.client.aclose()

    async def _request(self, method: str, path: str, data: Optional[dict] = None) -> dict:
        try:
            response = await self.client.request(method, path, data=data)
        except httpx.TimeoutException:
            raise PaymentProviderUnavailable("Payment provider timed out")
        except httpx.HTTPError as e:
            logger.warning(f"Payment provider request failed: {e}")
            raise PaymentProviderUnavailable("Payment provider is unreachable")

        if response.status_code >= 500 or response.status_code == 429:
            raise PaymentProviderUnavailable(f"Payment provider returned status {response.status_code}")
        if response.status_code >= 400:
            try:
                error = response.json().get("error", {})
            except ValueError:
                error = {}
            reason = error.get("message") or f"Payment rejected with status {response.status_code}"
            raise PaymentDeclined(reason, decline_code=error.get("decline_code") or error.get("code"))
        try:
            body = response.json()
        except ValueError:
            logger.warning(f"Payment provider returned a non-JSON body for {path}")
            raise PaymentProviderUnavailable("Payment provider returned an unreadable response")
        if not isinstance(body, dict) or "id" not in body:
            raise PaymentProviderUnavailable("Payment provider returned an unexpected response")
        return body

    @track_collaborator("payment", "charge")
    async def charge(self, amount_minor: int, currency: str, metadata: Dict[str, str]) -> PaymentConfirmation:
        data = {
            "mode": "payment",
            "success_url": self.success_url,
            "cancel_url": self.cancel_url,
            "line_items[0][quantity]": "1",
            "line_items[0][price_data][currency]": currency,
            "line_items[0][price_data][unit_amount]": str(amount_minor),
            "line_items[0][price_data][product_data][name]": metadata.get("description", "Taxi ride"),
            **_form_encode(metadata, "metadata"),
        }
        if metadata.get("email"):
            data["customer_email"] = metadata["email"]

        session = await self._request("POST", "/v1/checkout/sessions", data=data)
        logger.info(f"Created checkout session {session['id']} for {amount_minor} {currency}")
        return PaymentConfirmation(
            id=session["id"],
            status=self._status_of(session),
            redirect_url=session.get("url"),
        )

    @track_collaborator("payment", "verify")
    async def verify(self, confirmation_id: str) -> PaymentStatus:
        session = await self._request("GET", f"/v1/checkout/sessions/{confirmation_id}")
        return self._status_of(session)

    @staticmethod
    def _status_of(session: dict) -> PaymentStatus:
        if session.get("payment_status") in ("paid", "no_payment_required"):
            return PaymentStatus.SUCCEEDED
        if session.get("status") == "expired":
            return PaymentStatus.FAILED
        return PaymentStatus.PENDING


class OfflinePaymentClient:
    """Fare is collected by the driver; every charge settles at once."""

    settles_offline = True
    PREFIX = "offline_"

    async def charge(self, amount_minor: int, currency: str, metadata: Dict[str, str]) -> PaymentConfirmation:
        confirmation_id = f"{self.PREFIX}{uuid.uuid4().hex}"
        logger.info(f"Offline payment {confirmation_id} for {amount_minor} {currency}")
        return PaymentConfirmation(id=confirmation_id, status=PaymentStatus.SUCCEEDED)

    async def verify(self, confirmation_id: str) -> PaymentStatus:
        if confirmation_id.startswith(self.PREFIX):
            return PaymentStatus.SUCCEEDED
        return PaymentStatus.FAILED

    async def aclose(self):
        return None


def build_payment_client() -> PaymentClient:
    if settings.PAYMENT_PROVIDER == "stripe":
        if not settings.STRIPE_SECRET_KEY:
            raise ValueError("PAYMENT_PROVIDER=stripe requires STRIPE_SECRET_KEY")
        return StripeCheckoutClient()
    if settings.PAYMENT_PROVIDER != "offline":
        raise ValueError(f"Unknown PAYMENT_PROVIDER: {settings.PAYMENT_PROVIDER!r}")
    logger.warning("PAYMENT_PROVIDER=offline: bookings are registered as pending and paid to the driver")
    return OfflinePaymentClient()

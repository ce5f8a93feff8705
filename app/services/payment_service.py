"""
Payment Order Service

Hands a checkout off to the external payment service. Only order creation
happens here; the confirmation comes back later as a transaction id.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.errors import PaymentOrderError

logger = logging.getLogger(__name__)


@dataclass
class PaymentOrder:
    checkout_url: str
    order_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class PaymentService:
    def __init__(self, api_url: Optional[str] = None, timeout: Optional[int] = None):
        self.api_url = api_url or settings.PAYMENT_API_URL
        self.timeout = timeout or settings.PAYMENT_TIMEOUT
        self.currency = settings.PAYMENT_CURRENCY

    async def create_order(
        self,
        *,
        amount: float,
        reference_id: str,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
        customer: Optional[Dict[str, Any]] = None,
    ) -> PaymentOrder:
        payload = {
            "amount": amount,
            "currency": self.currency,
            "description": description,
            "reference_id": reference_id,
            "metadata": metadata or {},
            "customer": customer or {},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Payment service unreachable: {e}")
            raise PaymentOrderError("Payment service unavailable")

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400 or not data.get("success", True):
            logger.error(f"❌ Payment order refused ({response.status_code}): {data}")
            raise PaymentOrderError(data.get("error") or "Failed to create payment order")

        checkout_url = data.get("checkoutUrl") or data.get("checkout_url") or data.get("url")
        if not checkout_url:
            logger.error(f"❌ Payment order response without checkout URL: {data}")
            raise PaymentOrderError("Payment service returned no checkout URL")

        order_id = data.get("orderId") or data.get("order_id") or data.get("id")
        logger.info(f"💳 Payment order {order_id} created for {reference_id}: {amount} {self.currency}")
        return PaymentOrder(checkout_url=checkout_url, order_id=order_id, raw=data)


def get_payment_service() -> PaymentService:
    return PaymentService()

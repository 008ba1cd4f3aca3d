"""Configurable fake payment gateway for development and testing.

Simulates a wallet-transfer/card gateway without external calls. It can be
told to fail or to stall longer than the checkout timeout, which exercises
the "order stays pending" path.
"""

import time
from uuid import uuid4

from commerce.gateway.port import GatewayUnavailable, PaymentGateway, PaymentInitiation


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.delay_seconds: float = 0.0
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Gateway unavailable",
        delay_seconds: float = 0.0,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds

    def initiate_payment(
        self,
        method: str,
        amount: float,
        currency: str,
        payer_reference: str,
        idempotency_key: str,
    ) -> PaymentInitiation:
        self.calls.append(
            {
                "method": "initiate_payment",
                "payment_method": method,
                "amount": amount,
                "currency": currency,
                "payer_reference": payer_reference,
                "idempotency_key": idempotency_key,
            }
        )

        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if not self.should_succeed:
            raise GatewayUnavailable(self.failure_reason)

        return PaymentInitiation(
            transaction_id=f"fake_txn_{uuid4().hex[:12]}",
            status="pending",
            message="Payment request accepted",
        )

    def verify_callback_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"

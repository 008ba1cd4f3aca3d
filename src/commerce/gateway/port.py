"""Payment gateway port (abstract interface).

Defines the contract every gateway adapter implements. The engine only
initiates payments and verifies callbacks; settlement and refunds happen on
the gateway side and come back through the callback endpoint.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentInitiation:
    """Result of asking the gateway to start collecting a payment."""

    transaction_id: str
    status: str = "pending"
    message: str | None = None


class GatewayUnavailable(Exception):
    """The gateway rejected the call or could not be reached."""


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def initiate_payment(
        self,
        method: str,
        amount: float,
        currency: str,
        payer_reference: str,
        idempotency_key: str,
    ) -> PaymentInitiation:
        """Start a payment and return the gateway's pending transaction id."""
        ...

    @abstractmethod
    def verify_callback_signature(self, payload: str, signature: str) -> bool:
        """Verify that a callback payload is authentically from the gateway."""
        ...

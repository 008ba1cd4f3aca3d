"""Payment gateway factory and time-bounded initiation.

Provides get_gateway() / set_gateway() to swap implementations, and
initiate_with_timeout() which never lets a slow gateway hold a checkout
request longer than the configured timeout.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

from commerce.errors import ExternalServiceError
from commerce.gateway.fake_adapter import FakeGateway
from commerce.gateway.port import GatewayUnavailable, PaymentGateway, PaymentInitiation

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None


def initiate_with_timeout(timeout: float, **kwargs) -> PaymentInitiation:
    """Call ``initiate_payment`` on the current gateway, bounded by ``timeout`` seconds.

    Raises ExternalServiceError on timeout or gateway failure. The worker
    thread is abandoned on timeout; a late gateway answer is reconciled through
    the idempotent payment callback.
    """
    gateway = get_gateway()
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(gateway.initiate_payment, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as exc:
        raise ExternalServiceError(
            f"Payment gateway did not answer within {timeout}s",
            timeout=timeout,
        ) from exc
    except GatewayUnavailable as exc:
        raise ExternalServiceError(f"Payment gateway error: {exc}") from exc
    finally:
        executor.shutdown(wait=False)


__all__ = [
    "FakeGateway",
    "GatewayUnavailable",
    "PaymentGateway",
    "PaymentInitiation",
    "get_gateway",
    "initiate_with_timeout",
    "reset_gateway",
    "set_gateway",
]

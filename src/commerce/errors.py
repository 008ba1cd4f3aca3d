"""Business-rule errors raised by the commerce domain.

Each error carries a stable machine-readable ``kind`` and a human-readable
message. The API layer turns them into the result envelope; field-level input
problems keep using protean's ``ValidationError``.
"""


class CommerceError(Exception):
    kind = "commerce_error"

    def __init__(self, message: str, **details) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class InvalidQuantity(CommerceError):
    kind = "invalid_quantity"


class OutOfStock(CommerceError):
    """Requested cart quantity exceeds what is currently available."""

    kind = "out_of_stock"


class InsufficientStock(CommerceError):
    """One or more order lines could not be reserved.

    ``details["lines"]`` lists every failing line with product id, variant,
    requested and available quantities and a reason.
    """

    kind = "insufficient_stock"

    def __init__(self, message: str, lines: list[dict] | None = None) -> None:
        super().__init__(message, lines=lines or [])
        self.lines = lines or []


class EmptyCart(CommerceError):
    kind = "empty_cart"


class InvalidStateTransition(CommerceError):
    kind = "invalid_state_transition"


class NotCancellable(CommerceError):
    kind = "not_cancellable"


class NotFound(CommerceError):
    kind = "not_found"


class ExternalServiceError(CommerceError):
    """A collaborator (payment gateway) was unreachable or too slow."""

    kind = "external_service_error"

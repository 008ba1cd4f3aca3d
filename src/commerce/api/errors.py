"""Exception handlers that turn domain errors into the result envelope."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from commerce.errors import CommerceError

ERROR_STATUS_CODES: dict[str, int] = {
    "validation_error": 400,
    "invalid_quantity": 400,
    "empty_cart": 400,
    "out_of_stock": 409,
    "insufficient_stock": 409,
    "invalid_state_transition": 409,
    "not_cancellable": 409,
    "not_found": 404,
    "external_service_error": 502,
}


def error_response(status_code: int, kind: str, message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": {"kind": kind, "message": message, "details": details or {}},
        },
    )


async def commerce_error_handler(request: Request, exc: CommerceError) -> JSONResponse:  # noqa: ARG001
    return error_response(ERROR_STATUS_CODES.get(exc.kind, 400), exc.kind, exc.message, exc.details)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:  # noqa: ARG001
    messages = exc.messages if isinstance(exc.messages, dict) else {"error": [str(exc.messages)]}
    summary = "; ".join(f"{field}: {', '.join(map(str, errors))}" for field, errors in messages.items())
    return error_response(400, "validation_error", summary or "Invalid input", {"fields": messages})


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:  # noqa: ARG001
    return error_response(404, "not_found", str(exc) or "Not found")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: ARG001
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
    return error_response(422, "validation_error", "Malformed request", {"errors": errors})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # noqa: ARG001
    kind = {401: "unauthorized", 403: "forbidden", 404: "not_found"}.get(exc.status_code, "http_error")
    return error_response(exc.status_code, kind, str(exc.detail))


def register_envelope_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CommerceError, commerce_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

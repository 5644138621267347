# app/core/errors.py
from typing import Dict, Iterable, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "invalid_token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(self, detail: str = "forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "not_found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str = "conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UpstreamFailure(HTTPException):
    """A collaborator (blob store, geocoder) failed.

    Callers that can still persist the primary record catch this and
    fall back to a safe default.
    """

    def __init__(self, detail: str = "upstream_failure"):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


class ValidationFailed(HTTPException):
    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = list(errors)
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "validation_failed", "errors": self.errors},
        )

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailed":
        return cls([{"field": field, "message": message}])


def _field_name(loc: Iterable) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header", "cookie")]
    return ".".join(parts) or "body"


def field_errors(errors: Iterable[dict]) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into ``[{field, message}]``."""
    out = []
    for err in errors:
        out.append({"field": _field_name(err.get("loc", ())), "message": err.get("msg", "invalid")})
    return out


def from_pydantic(exc: PydanticValidationError, extra: Optional[List[Dict[str, str]]] = None) -> ValidationFailed:
    return ValidationFailed((extra or []) + field_errors(exc.errors()))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = field_errors(exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"detail": {"code": "validation_failed", "errors": errors}}),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)

"""Domain exception → HTTP response mapping, plus the service-key guard."""

import hmac

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from commerce.config import get_settings


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error(_request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"errors": exc.messages})

    @app.exception_handler(ObjectNotFoundError)
    async def not_found(_request: Request, exc: ObjectNotFoundError):
        return JSONResponse(status_code=404, content={"error": "Not found"})


def require_service_key(authorization: str = Header(default="")) -> None:
    """Accept only callers presenting ``Authorization: Bearer <service key>``."""
    service_key = get_settings().service_key
    scheme, _, token = authorization.partition(" ")
    if not service_key or scheme.lower() != "bearer" or not hmac.compare_digest(token.encode(), service_key.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")

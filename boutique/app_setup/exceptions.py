"""
Gestionnaires d'exceptions de l'API.
- ServiceError: code HTTP et corps {detail, code, retryable, errors?} portés par l'exception.
- RequestValidationError: 400 au même format, une entrée par champ invalide.
- HTTPException: corps JSON FastAPI standard {detail}.
- Toute autre exception: tracée dans les logs, 500 avec un message générique (jamais l'erreur brute).
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from boutique.utils.errors import ServiceError, ValidationFailed

logger = logging.getLogger(__name__)

def _field_errors(exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        msg = str(err.get("msg") or "Valeur invalide")
        # "Value error, <message>" pour les field_validator
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.append({"field": ".".join(loc) or "body", "message": msg})
    return errors

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.warning("service error %s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationFailed(fields=_field_errors(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Erreur interne, veuillez réessayer", "code": "error", "retryable": False})

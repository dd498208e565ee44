"""
Gestionnaires d'exceptions.
- GatewayError: statut et corps portés par l'erreur ({"error": {"message"}} ou {"error"} historique)
- AmountValidationError: 400 {"error": {"message"}}
- RequestValidationError: 400 {"error": {"message"}} (le front attend ce format plutôt qu'un 422)
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from donation_relay.errors import AmountValidationError, GatewayError


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request body"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(AmountValidationError)
    async def amount_error_handler(request: Request, exc: AmountValidationError):
        return JSONResponse(status_code=400, content={"error": {"message": exc.message}})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": {"message": _validation_message(exc)}})

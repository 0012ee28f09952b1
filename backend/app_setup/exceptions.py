"""
Gestionnaires d’exceptions.
- HTTPException: corps JSON FastAPI standard {"detail": ...}.
- NotCompleted échappée d’une vue: 200 {"success": false, "message", "paymentStatus"}.
- CheckoutError échappée d’une vue: {"message", "error"} avec le statut de l’erreur.
  Le message brut est exposé au client, comme dans les réponses 500 des vues.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from backend.utils.errors import CheckoutError, NotCompleted

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_json(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(NotCompleted)
    async def not_completed_json(request: Request, exc: NotCompleted):
        return JSONResponse(
            status_code=200,
            content={"success": False, "message": str(exc), "paymentStatus": exc.payment_status},
        )

    @app.exception_handler(CheckoutError)
    async def checkout_error_json(request: Request, exc: CheckoutError):
        logger.error("CheckoutError sur %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": "Erreur lors du traitement de la requête", "error": str(exc)},
        )

import logging
from typing import Any, Dict

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse

from backend.config import CLIENT_URL, CHECKOUT_SUCCESS_PATH, CHECKOUT_CANCEL_PATH
from backend.utils.errors import InvalidInput, NotCompleted
from backend.utils.security import require_user
from backend.utils.rate_limit import optional_rate_limit
from backend.payments import service as payments_service
from backend.payments.models import CheckoutSuccessRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module backend.payments.views
@router.post("/checkout-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_session(request: Request, user: Dict[str, Any] = Depends(require_user)):
    """
    Crée une session Checkout Stripe pour le panier de l’utilisateur authentifié.
    - Entrée JSON: { "products": [ { "_id", "name", "image", "price", "quantity" }, ... ], "couponCode": "..." }
    - Sécurité: require_user + rate limit (10 req / 60s)
    - Réponses: 200 {id, totalAmount}, 400 {error} si panier invalide, 500 {message, error}
    """
    try:
        body = await request.json()
    except Exception:
        body = None
    body = body if isinstance(body, dict) else {}

    coupon_code = body.get("couponCode")
    coupon_code = coupon_code.strip() if isinstance(coupon_code, str) else ""

    success_url = f"{CLIENT_URL}{CHECKOUT_SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}"
    cancel_url = f"{CLIENT_URL}{CHECKOUT_CANCEL_PATH}"
    try:
        result = payments_service.create_checkout_session(
            user_id=str(user.get("id")),
            products=body.get("products"),
            coupon_code=coupon_code or None,
            success_url=success_url,
            cancel_url=cancel_url,
        )
        return JSONResponse(result)
    except InvalidInput as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logger.exception("Erreur create_checkout_session")
        return JSONResponse(
            status_code=500,
            content={"message": "Erreur lors de la création du paiement", "error": str(e)},
        )

@router.post("/checkout-success")
async def checkout_success(body: CheckoutSuccessRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Confirme une session Stripe après redirection depuis la page de paiement.
    - Session d'un autre utilisateur: 403
    - payment_status='paid': désactive le coupon utilisé et crée la commande (une seule par session)
    - Autre statut: 200 {success: false, message, paymentStatus}
    - Erreurs: 500 {message, error}
    """
    try:
        return JSONResponse(payments_service.checkout_success(body.sessionId, user_id=str(user.get("id"))))
    except NotCompleted as e:
        logger.info("checkout_success: session non payée session_id=%s status=%s", body.sessionId, e.payment_status)
        return JSONResponse({"success": False, "message": str(e), "paymentStatus": e.payment_status})
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur checkout_success")
        return JSONResponse(
            status_code=500,
            content={"message": "Erreur lors de la confirmation du paiement", "error": str(e)},
        )

"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Toute erreur du SDK est convertie en ProviderError.
"""
import logging
import stripe
from typing import Any, Dict, List, Optional

from backend.utils.errors import ProviderError

logger = logging.getLogger(__name__)

# module backend.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    from backend.config import STRIPE_SECRET_KEY
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def _as_dict(obj: Any) -> Dict[str, Any]:
    # StripeObject expose to_dict(); les mocks de tests renvoient des dicts simples
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    mode: str,
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, Any],
    discounts: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - line_items: lignes Stripe (price_data/quantity), non remisées
    - discounts: [{"coupon": "<id>"}] si un coupon s'applique, sinon []
    - metadata: {"user_id": "...", "coupon_code": "...", "products": "[...]"}
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            line_items=line_items,
            mode=mode,
            success_url=success_url,
            cancel_url=cancel_url,
            discounts=discounts or [],
            metadata=metadata,
        )
    except stripe.StripeError as e:
        logger.error("stripe_client.create_session failed: %s", e)
        raise ProviderError(str(e)) from e
    return _as_dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "payment_status", "amount_total", "metadata".
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as e:
        logger.error("stripe_client.get_session failed session_id=%s: %s", session_id, e)
        raise ProviderError(str(e)) from e
    return _as_dict(session)

def create_percent_coupon(percent_off: float) -> str:
    """
    Crée un coupon Stripe à usage unique (duration="once", max_redemptions=1)
    et retourne son identifiant, à passer dans discounts=[{"coupon": id}].
    """
    require_stripe()
    try:
        coupon = stripe.Coupon.create(
            percent_off=percent_off,
            duration="once",
            max_redemptions=1,
        )
    except stripe.StripeError as e:
        logger.error("stripe_client.create_percent_coupon failed: %s", e)
        raise ProviderError(str(e)) from e
    return coupon["id"]

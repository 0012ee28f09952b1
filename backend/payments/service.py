"""
Cas d'usage 'payments': orchestre cart, stripe, metadata, coupons et commandes.
- create_checkout_session: panier -> session Stripe (+ remise coupon, + coupon de fidélité).
- checkout_success: session payée -> désactivation du coupon utilisé + commande.
"""
from typing import Any, Dict, Optional
import logging

from fastapi import HTTPException

from backend.coupons import repository as coupons_repo
from backend.coupons import service as coupons_service
from backend.orders import repository as orders_repo
from backend.utils.errors import NotCompleted

from . import cart as cart_logic
from . import metadata as meta
from . import stripe_client

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Paiement réussi, commande créée et coupon désactivé s'il a été utilisé."

def create_checkout_session(
    *,
    user_id: str,
    products: Any,
    coupon_code: Optional[str] = None,
    success_url: str,
    cancel_url: str,
) -> Dict[str, Any]:
    """
    Prépare la session Stripe à partir d'un user_id, d'un panier et d'un code coupon optionnel.
    success_url et cancel_url doivent être fournis par l'appelant (vue).
    Étapes:
      1) Valider le panier (InvalidInput si vide/mal formé)
      2) line_items + total en centimes, arrondi article par article
      3) Coupon actif de l'utilisateur -> remise sur le total agrégé (code inconnu: pas de remise)
      4) Coupon Stripe à usage unique si remise, puis création de la session
      5) Total remisé >= 200.00 -> coupon de fidélité pour l'utilisateur
    Retour: {"id": <session_id>, "totalAmount": <total en unités majeures>}
    """
    cart_products = cart_logic.parse_products(products)
    line_items, total = cart_logic.to_line_items(cart_products)

    coupon = coupons_service.find_usable_coupon(coupon_code, user_id) if coupon_code else None
    discounts = []
    if coupon:
        percent = coupon.get("discount_percentage") or 0
        total = cart_logic.apply_discount(total, percent)
        discounts = [{"coupon": stripe_client.create_percent_coupon(percent)}]

    session = stripe_client.create_session(
        line_items=line_items,
        mode="payment",
        success_url=success_url,
        cancel_url=cancel_url,
        discounts=discounts,
        metadata=cart_logic.make_metadata(user_id, coupon_code, cart_products),
    )

    # Émis même si le client n'achève jamais le paiement
    if coupons_service.qualifies_for_bonus(total):
        coupons_service.issue_bonus_coupon(user_id)

    logger.info(
        "payments.create_checkout_session user_id=%s session_id=%s total=%s coupon=%s",
        user_id, session.get("id"), total, bool(coupon),
    )
    return {"id": session.get("id"), "totalAmount": total / 100}

def checkout_success(session_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Règle une session Stripe Checkout.
    - user_id fourni et différent du propriétaire des métadonnées: 403.
    - payment_status != "paid": NotCompleted (la vue répond explicitement).
    - Commande déjà enregistrée pour cette session: renvoyée telle quelle, rien n'est réécrit.
    - Sinon: désactive le coupon des métadonnées puis insère la commande à partir
      de l'instantané produits (prix figés au checkout).
    Retour: {"success": True, "message": ..., "orderId": ...}
    """
    session = stripe_client.get_session(session_id)
    owner = (session.get("metadata") or {}).get("user_id")
    if user_id is not None and owner != user_id:
        logger.warning("payments.checkout_success: propriétaire différent session_id=%s user_id=%s", session_id, user_id)
        raise HTTPException(status_code=403, detail="Session appartenant à un autre utilisateur")

    payment_status = session.get("payment_status") or ""
    if payment_status != "paid":
        raise NotCompleted(payment_status)

    existing = orders_repo.get_order_by_session_id(session_id)
    if existing:
        logger.info("payments.checkout_success: déjà réglée session_id=%s order_id=%s", session_id, existing.get("id"))
        return {"success": True, "message": SUCCESS_MESSAGE, "orderId": existing.get("id")}

    owner_id, coupon_code, products = meta.extract_checkout_metadata(session)
    if coupon_code:
        coupons_repo.deactivate_coupon(code=coupon_code, user_id=owner_id)

    order = orders_repo.insert_order(
        user_id=owner_id,
        products=meta.to_order_products(products),
        total_amount=(session.get("amount_total") or 0) / 100,
        stripe_session_id=session_id,
    )
    logger.info("payments.checkout_success session_id=%s order_id=%s user_id=%s", session_id, order.get("id"), owner_id)
    return {"success": True, "message": SUCCESS_MESSAGE, "orderId": order.get("id")}

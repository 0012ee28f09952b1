"""
Désérialisation des métadonnées Stripe (user_id, coupon_code, products).
"""
import json
from typing import Any, Dict, List, Tuple

from backend.utils.errors import CheckoutError

# module backend.payments.metadata
def extract_checkout_metadata(session: Dict[str, Any]) -> Tuple[str | None, str, List[Dict[str, Any]]]:
    """
    Extrait (user_id, coupon_code, products) depuis une session Stripe Checkout.
    - Attend session["metadata"] = {user_id, coupon_code, products(JSON)}
    - coupon_code vaut "" si aucun coupon n'a été utilisé.
    - Soulève CheckoutError si l'instantané produits est illisible: la commande
      ne peut pas être reconstruite sans lui.
    """
    meta = (session or {}).get("metadata") or {}
    user_id = meta.get("user_id")
    coupon_code = meta.get("coupon_code") or ""
    products_json = meta.get("products")
    try:
        products = json.loads(products_json) if products_json else []
    except (TypeError, ValueError) as e:
        raise CheckoutError(f"Métadonnées produits illisibles: {e}") from e
    if not isinstance(products, list):
        raise CheckoutError("Métadonnées produits illisibles: liste attendue")
    return user_id, coupon_code, products

def to_order_products(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Mappe l'instantané {id, quantity, price} vers les lignes de commande {product, quantity, price}."""
    return [
        {"product": p.get("id"), "quantity": p.get("quantity"), "price": p.get("price")}
        for p in products
    ]

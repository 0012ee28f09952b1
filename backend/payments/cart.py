"""
Logique panier pure (pas de Stripe, pas de DB).
"""
import json
import math
from typing import Any, Dict, List, Sequence, Tuple
from pydantic import ValidationError

from backend.config import STRIPE_CURRENCY
from backend.utils.errors import InvalidInput
from .models import CartProduct

# module backend.payments.cart
def round_half_up(value: float) -> int:
    """Arrondi à l'entier le plus proche, demi-valeurs vers le haut (0.5 -> 1)."""
    return int(math.floor(value + 0.5))

def to_minor_units(price: float) -> int:
    """Convertit un prix en unités majeures (dollars) vers les centimes attendus par Stripe."""
    return round_half_up(price * 100)

def parse_products(products: Any) -> List[CartProduct]:
    """
    Valide le panier brut [{_id, name, image, price, quantity}, ...].
    - Soulève InvalidInput si le panier est absent, n'est pas une liste, est vide
      ou contient une ligne invalide.
    """
    if not isinstance(products, (list, tuple)) or not products:
        raise InvalidInput("Panier invalide ou vide")
    try:
        return [CartProduct.model_validate(p) for p in products]
    except ValidationError as e:
        raise InvalidInput(f"Article invalide: {e.errors()[0].get('msg')}") from e

def to_line_items(products: Sequence[CartProduct]) -> Tuple[List[Dict[str, Any]], int]:
    """
    Construit les line_items Stripe et le total avant remise (en centimes).
    - unit_amount arrondi article par article: le total peut dériver de ±1 centime
      par ligne par rapport à un arrondi unique de la somme.
    """
    line_items: List[Dict[str, Any]] = []
    total = 0
    for product in products:
        unit_amount = to_minor_units(product.price)
        total += unit_amount * product.quantity
        product_data: Dict[str, Any] = {"name": product.name}
        if product.image:
            product_data["images"] = [product.image]
        line_items.append({
            "price_data": {
                "currency": STRIPE_CURRENCY,
                "product_data": product_data,
                "unit_amount": unit_amount,
            },
            "quantity": product.quantity,
        })
    return line_items, total

def apply_discount(total: int, discount_percentage: float) -> int:
    """Retire round(total * pct / 100) du total agrégé (une seule fois, pas par ligne)."""
    return total - round_half_up(total * float(discount_percentage) / 100)

def make_metadata(user_id: str, coupon_code: str | None, products: Sequence[CartProduct]) -> Dict[str, str]:
    """
    Sérialise les métadonnées Stripe associées à la session.
    - products: instantané {id, quantity, price} figé au moment du checkout,
      relu tel quel au règlement (pas de relecture du catalogue).
    """
    snapshot = [{"id": p.id, "quantity": p.quantity, "price": p.price} for p in products]
    return {
        "user_id": str(user_id),
        "coupon_code": coupon_code or "",
        "products": json.dumps(snapshot),
    }

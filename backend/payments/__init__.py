"""
Module 'payments' (feature-first): point d'entrée public.
Réunit logique panier, metadata Stripe, client Stripe et services de checkout/règlement.
"""

from .cart import round_half_up, to_minor_units, parse_products, to_line_items, apply_discount, make_metadata
from .metadata import extract_checkout_metadata, to_order_products
from .stripe_client import require_stripe, create_session, get_session, create_percent_coupon
from .service import create_checkout_session, checkout_success

__all__ = [
    # cart
    "round_half_up",
    "to_minor_units",
    "parse_products",
    "to_line_items",
    "apply_discount",
    "make_metadata",
    # metadata
    "extract_checkout_metadata",
    "to_order_products",
    # stripe
    "require_stripe",
    "create_session",
    "get_session",
    "create_percent_coupon",
    # services
    "create_checkout_session",
    "checkout_success",
]

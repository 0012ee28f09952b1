"""Accès aux données pour les commandes (table orders).
- Une commande par session Stripe: contrainte unique sur stripe_session_id.
- Les lignes ne sont jamais modifiées après insertion.
"""
from typing import Any, Dict, List, Optional
import logging

from postgrest.exceptions import APIError

import backend.infra.supabase_client as supabase_client
from backend.utils.errors import PersistenceError

logger = logging.getLogger(__name__)

TABLE = "orders"
UNIQUE_VIOLATION = "23505"

def get_order_by_session_id(stripe_session_id: str) -> Optional[Dict[str, Any]]:
    """Commande déjà enregistrée pour cette session Stripe, sinon None."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .select("*")
            .eq("stripe_session_id", stripe_session_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.get_order_by_session_id failed session_id=%s", stripe_session_id)
        raise PersistenceError(str(e)) from e
    rows = res.data or []
    return rows[0] if rows else None

def insert_order(
    *,
    user_id: str,
    products: List[Dict[str, Any]],
    total_amount: float,
    stripe_session_id: str,
) -> Dict[str, Any]:
    """
    Insère la commande et retourne la ligne créée (avec id).
    Si une insertion concurrente a déjà pris la session (violation d'unicité),
    retourne la commande existante.
    """
    row = {
        "user_id": user_id,
        "products": products,
        "total_amount": total_amount,
        "stripe_session_id": stripe_session_id,
    }
    try:
        res = supabase_client.get_service_supabase().table(TABLE).insert(row).execute()
    except APIError as e:
        if getattr(e, "code", None) == UNIQUE_VIOLATION:
            logger.warning("orders.repository.insert_order: session déjà enregistrée session_id=%s", stripe_session_id)
            existing = get_order_by_session_id(stripe_session_id)
            if existing:
                return existing
        logger.exception("orders.repository.insert_order failed session_id=%s", stripe_session_id)
        raise PersistenceError(str(e)) from e
    except Exception as e:
        logger.exception("orders.repository.insert_order failed session_id=%s", stripe_session_id)
        raise PersistenceError(str(e)) from e
    rows = res.data or []
    if not rows:
        raise PersistenceError("Insertion de la commande sans retour de ligne")
    return rows[0]

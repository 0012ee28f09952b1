"""Couche d’accès aux données (Supabase) pour les coupons.
Table: coupons (code unique, discount_percentage, expiration_date, is_active, user_id unique).
Les erreurs client sont journalisées puis relevées en PersistenceError.
"""
from typing import Any, Dict, Optional
import logging

import backend.infra.supabase_client as supabase_client
from backend.utils.errors import PersistenceError

logger = logging.getLogger(__name__)

TABLE = "coupons"

def find_active_coupon(code: str, user_id: str) -> Optional[Dict[str, Any]]:
    """
    Coupon actif correspondant à {code, user_id, is_active=true}, sinon None.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .select("*")
            .eq("code", code)
            .eq("user_id", user_id)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("coupons.repository.find_active_coupon failed code=%s user_id=%s", code, user_id)
        raise PersistenceError(str(e)) from e
    rows = res.data or []
    return rows[0] if rows else None

def find_user_active_coupon(user_id: str) -> Optional[Dict[str, Any]]:
    """Coupon actif de l'utilisateur (au plus un), sinon None."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("coupons.repository.find_user_active_coupon failed user_id=%s", user_id)
        raise PersistenceError(str(e)) from e
    rows = res.data or []
    return rows[0] if rows else None

def deactivate_coupon(code: str, user_id: str) -> bool:
    """
    Passe is_active=false sur le coupon {code, user_id}.
    - Retourne False si aucun coupon ne correspond (no-op).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .update({"is_active": False})
            .eq("code", code)
            .eq("user_id", user_id)
            .execute()
        )
    except Exception as e:
        logger.exception("coupons.repository.deactivate_coupon failed code=%s user_id=%s", code, user_id)
        raise PersistenceError(str(e)) from e
    return bool(res.data)

def replace_user_coupon(coupon: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Remplace le coupon de coupon["user_id"] (actif ou non) par celui fourni.
    Upsert sur la contrainte unique user_id: une seule requête, pas de fenêtre
    entre suppression et insertion.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .upsert(coupon, on_conflict="user_id")
            .execute()
        )
    except Exception as e:
        logger.exception("coupons.repository.replace_user_coupon failed user_id=%s", coupon.get("user_id"))
        raise PersistenceError(str(e)) from e
    rows = res.data or []
    return rows[0] if rows else None

"""Couche service des coupons.
Rôles:
- Émettre un coupon de fidélité (10 %, 30 jours) après un gros achat.
- Lire et valider le coupon d'un utilisateur avant le checkout.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging
import secrets
import string

from fastapi import HTTPException

from backend.coupons import repository

logger = logging.getLogger(__name__)

BONUS_COUPON_PREFIX = "GIFT"
BONUS_COUPON_PERCENT = 10
BONUS_COUPON_VALIDITY = timedelta(days=30)
BONUS_THRESHOLD_MINOR = 20000  # 200.00 en centimes

_CODE_ALPHABET = string.ascii_uppercase + string.digits

def generate_coupon_code(length: int = 6) -> str:
    return BONUS_COUPON_PREFIX + "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))

def qualifies_for_bonus(total_minor: int) -> bool:
    """Vrai si le total remisé (centimes) atteint le seuil de fidélité."""
    return total_minor >= BONUS_THRESHOLD_MINOR

def is_expired(coupon: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """
    Compare expiration_date (ISO 8601, renvoyé par Supabase) à maintenant.
    Les fractions de seconde tronquées par PostgREST (ex: .12345) exigent Python 3.11+.
    Un coupon sans date d'expiration n'expire pas.
    """
    raw = coupon.get("expiration_date")
    if not raw:
        return False
    expires_at = raw if isinstance(raw, datetime) else datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= (now or datetime.now(timezone.utc))

def find_usable_coupon(code: str, user_id: str) -> Optional[Dict[str, Any]]:
    """Coupon actif et non expiré de l'utilisateur pour ce code, sinon None."""
    coupon = repository.find_active_coupon(code=code, user_id=user_id)
    if coupon and is_expired(coupon):
        logger.info("coupons.find_usable_coupon: coupon expiré ignoré code=%s user_id=%s", code, user_id)
        return None
    return coupon

def issue_bonus_coupon(user_id: str) -> Optional[Dict[str, Any]]:
    """
    Remplace le coupon existant de l'utilisateur par un coupon GIFTXXXXXX
    de 10 % valable 30 jours. Les appelants ignorent le retour.
    """
    expires_at = datetime.now(timezone.utc) + BONUS_COUPON_VALIDITY
    coupon = repository.replace_user_coupon({
        "code": generate_coupon_code(),
        "discount_percentage": BONUS_COUPON_PERCENT,
        "expiration_date": expires_at.isoformat(),
        "is_active": True,
        "user_id": user_id,
    })
    logger.info("coupons.issue_bonus_coupon user_id=%s code=%s", user_id, (coupon or {}).get("code"))
    return coupon

def get_user_coupon(user_id: str) -> Optional[Dict[str, Any]]:
    return repository.find_user_active_coupon(user_id)

def validate_coupon(code: str, user_id: str) -> Dict[str, Any]:
    """Vérifie un code avant paiement.
    - 404 si aucun coupon actif ne correspond pour l'utilisateur.
    - 404 si le coupon est expiré (il est alors désactivé).
    - Sinon {message, code, discountPercentage}.
    """
    coupon = repository.find_active_coupon(code=code, user_id=user_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon introuvable")
    if is_expired(coupon):
        repository.deactivate_coupon(code=code, user_id=user_id)
        raise HTTPException(status_code=404, detail="Coupon expiré")
    return {
        "message": "Coupon valide",
        "code": coupon.get("code"),
        "discountPercentage": coupon.get("discount_percentage"),
    }

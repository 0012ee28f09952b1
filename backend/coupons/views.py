# module backend.coupons.views

"""Endpoints coupons (utilisateur authentifié).
- GET /api/v1/coupons: coupon actif de l'utilisateur (ou null).
- POST /api/v1/coupons/validate: vérifie un code avant le checkout.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Any, Dict
import logging

from backend.utils.security import require_user
from backend.coupons import service as coupons_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/coupons", tags=["Coupons API"])


class ValidateCouponRequest(BaseModel):
    code: str = Field(min_length=1)


@router.get("")
def get_coupon(user: Dict[str, Any] = Depends(require_user)):
    return coupons_service.get_user_coupon(user.get("id"))


@router.post("/validate")
def validate_coupon(body: ValidateCouponRequest, user: Dict[str, Any] = Depends(require_user)):
    return coupons_service.validate_coupon(body.code.strip(), user.get("id"))

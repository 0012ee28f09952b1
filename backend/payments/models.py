"""
Schémas pydantic de la feature 'payments'.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

# module backend.payments.models
class CartProduct(BaseModel):
    """
    Ligne de panier fournie par le client.
    - id: accepte "_id" (front historique) ou "id"
    - price: prix unitaire en unités majeures (ex: dollars)
    - quantity: entier positif, 1 si absent ou nul
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, alias="_id")
    name: str = "Article"
    image: Optional[str] = None
    price: float = Field(ge=0)
    quantity: int = 1

    @field_validator("id", mode="before")
    def id_as_str(cls, v):
        return None if v is None else str(v)

    @field_validator("quantity", mode="before")
    def default_quantity(cls, v):
        return v or 1

    @field_validator("quantity")
    def positive_quantity(cls, v: int) -> int:
        if v < 1:
            raise ValueError("quantity doit être un entier positif")
        return v


class CheckoutSuccessRequest(BaseModel):
    sessionId: str = Field(min_length=1)

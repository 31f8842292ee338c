"""Montants de commande et corps de requêtes du domaine Commandes."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

# Taxe fixe (18%), non configurable par produit ni par juridiction
TAX_RATE = Decimal("0.18")

def compute_total(subtotal: Decimal) -> int:
    """Total TTC arrondi à l'unité (demi supérieur): round(subtotal x 1.18)."""
    return int((Decimal(subtotal) * (Decimal("1") + TAX_RATE)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def to_minor_units(amount: Any) -> int:
    """Montant en plus petite unité monétaire (paise/centimes)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shipping_address: Dict[str, Any] = Field(default_factory=dict, alias="shippingAddress")

class OrderStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    tracking_number: Optional[str] = Field(default=None, alias="trackingNumber")

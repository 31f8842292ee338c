# module boutique.cart.views
"""Endpoints du panier (/api/v1/cart). Toutes les routes exigent un utilisateur connecté."""
from typing import Any, Dict, Optional
import logging
from fastapi import APIRouter, Depends

from boutique.utils.security import require_user
from boutique.cart import service as cart_service
from boutique.cart.models import CartItemRequest, MergeCartRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])

@router.get("")
def get_cart(user: Dict[str, Any] = Depends(require_user)):
    return {"success": True, "data": cart_service.get_cart(user["id"])}

@router.post("/add")
def add_to_cart(body: CartItemRequest, user: Dict[str, Any] = Depends(require_user)):
    """Ajoute un produit (variante size/color), quantité plafonnée au stock courant."""
    cart = cart_service.add_item(user["id"], body.product_id, body.quantity, body.size, body.color)
    return {"success": True, "message": "Produit ajouté au panier", "data": cart}

@router.put("/update")
def update_cart(body: CartItemRequest, user: Dict[str, Any] = Depends(require_user)):
    cart = cart_service.update_item(user["id"], body.product_id, body.quantity, body.size, body.color)
    return {"success": True, "message": "Panier mis à jour", "data": cart}

@router.delete("/remove/{product_id}")
def remove_from_cart(
    product_id: str,
    size: Optional[str] = None,
    color: Optional[str] = None,
    user: Dict[str, Any] = Depends(require_user),
):
    """Sans size/color: retire toutes les variantes du produit."""
    cart = cart_service.remove_item(user["id"], product_id, size, color)
    return {"success": True, "message": "Produit retiré du panier", "data": cart}

@router.post("/merge")
def merge_cart(body: MergeCartRequest, user: Dict[str, Any] = Depends(require_user)):
    """Fusionne le panier invité (localStorage) dans le panier serveur après connexion."""
    guest_items = [it.model_dump() for it in body.items]
    cart = cart_service.merge_items(user["id"], guest_items)
    return {"success": True, "message": "Panier fusionné", "data": cart}

@router.delete("/clear")
def clear_cart(user: Dict[str, Any] = Depends(require_user)):
    return {"success": True, "message": "Panier vidé", "data": cart_service.clear_cart(user["id"])}

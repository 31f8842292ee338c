"""Couche service de l'user story Commandes.
Rôles:
- Checkout: valide l'adresse, résout le snapshot du panier, réserve le stock,
  persiste la commande (pending/pending) puis vide le panier.
- Lecture des commandes du client (propriété vérifiée) et console admin.
Ordre strict du checkout: snapshot -> réservation -> insertion -> vidage du panier.
Le panier n'est vidé qu'après une insertion confirmée; si l'insertion échoue, la
réservation est rendue et le panier reste intact.
"""
from decimal import Decimal
from math import ceil
from typing import Any, Dict, List, Optional
import logging

from boutique.cart import service as cart_service
from boutique.catalog import service as catalog_service
from boutique.orders import repository
from boutique.orders import state
from boutique.orders.models import compute_total
from boutique.utils.errors import NotFound, StorageUnavailable, ValidationFailed
from boutique.utils.validators import shipping_address_errors

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "pincode", "country", "phone")

def normalize_address(address: Dict[str, Any]) -> Dict[str, Any]:
    clean = {k: str(address.get(k)).strip() for k in ADDRESS_FIELDS if address.get(k) not in (None, "")}
    clean.setdefault("country", "India")
    return clean

def _serialize_lines(lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "product_id": line["product_id"],
            "name": line.get("name") or "",
            "quantity": int(line["quantity"]),
            "unit_price": float(line["unit_price"]),
            "size": line.get("size"),
            "color": line.get("color"),
        }
        for line in lines
    ]

def create_order(user_id: str, shipping_address: Dict[str, Any], snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """
    Transforme un snapshot de panier en commande persistée.
    - Adresse validée (street, city, state, pincode à 6 chiffres) avant tout effet de bord
    - total_amount = round(subtotal x 1.18), calculé côté serveur uniquement
    - Stock réservé avant l'insertion, rendu si l'insertion échoue
    - Panier vidé seulement une fois la commande écrite
    """
    errors = shipping_address_errors(shipping_address)
    if errors:
        raise ValidationFailed("Adresse de livraison invalide", fields=errors)

    subtotal = Decimal(snapshot["subtotal"])
    payload = {
        "user_id": str(user_id),
        "items": _serialize_lines(snapshot["lines"]),
        "shipping_address": normalize_address(shipping_address),
        "subtotal": float(subtotal),
        "total_amount": compute_total(subtotal),
        "payment_status": state.PAYMENT_PENDING,
        "order_status": state.ORDER_PENDING,
        "stock_released": False,
    }

    reserved = catalog_service.reserve_stock(snapshot["quantities"])
    try:
        order = repository.insert_order(payload)
        if not order:
            raise StorageUnavailable("Commande non enregistrée, veuillez réessayer")
    except Exception:
        logger.warning("orders.create_order insert failed, releasing stock user_id=%s", user_id)
        catalog_service.release_stock(reserved)
        raise

    try:
        cart_service.clear_cart(user_id)
    except Exception:
        # Commande déjà écrite: on ne l'annule pas pour un panier non vidé
        logger.exception("orders.create_order cart clear failed order_id=%s user_id=%s", order.get("id"), user_id)

    logger.info("orders.create_order order_id=%s user_id=%s total=%s", order.get("id"), user_id, payload["total_amount"])
    return order

def checkout(user_id: str, shipping_address: Dict[str, Any]) -> Dict[str, Any]:
    """Point d'entrée du checkout: validation d'adresse, snapshot, puis create_order."""
    errors = shipping_address_errors(shipping_address)
    if errors:
        raise ValidationFailed("Adresse de livraison invalide", fields=errors)
    snapshot = cart_service.resolve_snapshot(user_id)
    return create_order(user_id, shipping_address, snapshot)

def list_my_orders(user_id: str) -> List[Dict[str, Any]]:
    return repository.list_user_orders(user_id)

def get_order_for_user(order_id: str, user_id: str) -> Dict[str, Any]:
    """Commande du client; 404 identique qu'elle n'existe pas ou appartienne à un autre."""
    order = repository.get_order(order_id)
    if not order or str(order.get("user_id")) != str(user_id):
        raise NotFound("Commande introuvable")
    return order

def get_order_for_staff(order_id: str) -> Dict[str, Any]:
    """Détail d'une commande pour la console admin (sans contrôle de propriété)."""
    order = repository.get_order(order_id)
    if not order:
        raise NotFound("Commande introuvable")
    return order

def list_orders(status: Optional[str] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    """Console admin: filtre optionnel sur order_status, pagination 1-based."""
    if status:
        status = state.check_order_status(status)
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 10), 1), 100)
    rows, total = repository.list_orders(status, (page - 1) * limit, limit)
    return {
        "count": len(rows),
        "total": total,
        "page": page,
        "pages": ceil(total / limit) if total else 0,
        "data": rows,
    }

def _line_quantities(items: List[Dict[str, Any]]) -> Dict[str, int]:
    quantities: Dict[str, int] = {}
    for it in items or []:
        product_id = str(it.get("product_id"))
        quantities[product_id] = quantities.get(product_id, 0) + int(it.get("quantity") or 0)
    return quantities

def update_order_status(order_id: str, status: str, tracking_number: Optional[str] = None) -> Dict[str, Any]:
    """
    Action staff: pose order_status à n'importe quelle valeur connue.
    N'agit jamais sur payment_status. Annuler une commande non payée rend son stock,
    une seule fois (drapeau stock_released posé par la même écriture conditionnelle).
    """
    status = state.check_order_status(status)
    changes: Dict[str, Any] = {"order_status": status}
    if tracking_number:
        changes["tracking_number"] = tracking_number.strip()

    if status == state.ORDER_CANCELLED:
        claimed = repository.update_order(
            order_id,
            {**changes, "stock_released": True},
            payment_status_in=(state.PAYMENT_PENDING, state.PAYMENT_FAILED),
            stock_released=False,
        )
        if claimed:
            catalog_service.release_stock(_line_quantities(claimed.get("items")))
            logger.info("orders.update_order_status cancelled, stock released order_id=%s", order_id)
            return claimed

    order = repository.update_order(order_id, changes)
    if not order:
        raise NotFound("Commande introuvable")
    logger.info("orders.update_order_status order_id=%s status=%s", order_id, status)
    return order

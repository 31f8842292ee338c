# module boutique.orders.views

"""Endpoints de l'user story Commandes (/api/v1/orders).
- /checkout: transforme le panier en commande (authentifié, rate-limité).
- /my-orders: commandes du client, plus récentes d'abord.
- /{order_id}: détail d'une commande du client.
"""
from typing import Any, Dict
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from boutique.utils.security import require_user
from boutique.utils.rate_limit import optional_rate_limit
from boutique.orders import service as orders_service
from boutique.orders.models import CheckoutRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


@router.post("/checkout", status_code=201, dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout(body: CheckoutRequest, user: Dict[str, Any] = Depends(require_user)):
    """Crée une commande à partir du panier courant.
    - Prix et stock relus dans le catalogue au moment du checkout.
    - 400: adresse invalide, panier vide, stock insuffisant; 404: produit disparu.
    - Retourne {orderId, totalAmount, order}.
    """
    order = orders_service.checkout(user["id"], body.shipping_address)
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Commande créée",
            "orderId": order.get("id"),
            "totalAmount": order.get("total_amount"),
            "data": order,
        },
    )


@router.get("/my-orders")
def my_orders(user: Dict[str, Any] = Depends(require_user)):
    orders = orders_service.list_my_orders(user["id"])
    return {"success": True, "count": len(orders), "data": orders}


@router.get("/{order_id}")
def get_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return {"success": True, "data": orders_service.get_order_for_user(order_id, user["id"])}

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query

from boutique.utils.security import require_admin
from boutique.utils.rate_limit import optional_rate_limit
from boutique.admin import service as admin_service
from boutique.admin.models import VerifyPromotionRequest
from boutique.orders import service as orders_service
from boutique.orders.models import OrderStatusRequest
# module boutique.admin.views

router = APIRouter(prefix="/api/v1/admin", tags=["Admin API"])

@router.post("/request-promotion", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def request_promotion(user: Dict[str, Any] = Depends(require_admin)):
    """Envoie un OTP à l'email de l'admin connecté (étape 1 de la promotion)."""
    admin_service.request_promotion(user)
    return {"success": True, "message": "Code de vérification envoyé à votre email"}

@router.post("/verify-promotion", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def verify_promotion(body: VerifyPromotionRequest, user: Dict[str, Any] = Depends(require_admin)):
    promoted = admin_service.verify_promotion(user["id"], body.otp, body.target_user_id)
    return {"success": True, "message": "Utilisateur promu administrateur", "data": promoted}

# API JSON: console commandes
@router.get("/orders")
def list_orders(
    status: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: Dict[str, Any] = Depends(require_admin),
):
    result = orders_service.list_orders(status, page, limit)
    return {"success": True, **result}

@router.put("/orders/{order_id}/status")
def update_order_status(order_id: str, body: OrderStatusRequest, user: Dict[str, Any] = Depends(require_admin)):
    order = orders_service.update_order_status(order_id, body.status, body.tracking_number)
    return {"success": True, "message": "Statut mis à jour", "data": order}

@router.get("/orders/{order_id}")
def get_order(order_id: str, user: Dict[str, Any] = Depends(require_admin)):
    return {"success": True, "data": orders_service.get_order_for_staff(order_id)}

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from boutique.utils.security import require_user
from boutique.utils.rate_limit import optional_rate_limit
from boutique.payments import service as payments_service
from boutique.payments.models import CreateIntentRequest, VerifyPaymentRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payment", tags=["Payments API"])

# module boutique.payments.views
@router.post("/create-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_intent(body: CreateIntentRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Crée l'intent de paiement pour une commande du client.
    - Montant dérivé de la commande persistée (jamais du client)
    - 403 si la commande appartient à un autre utilisateur, 400 si déjà payée
    - 503 réessayable si la passerelle ne répond pas (commande inchangée)
    """
    data = payments_service.create_intent_for_order(body.order_id, user["id"])
    return {"success": True, "data": data}

@router.post("/verify")
def verify_payment(body: VerifyPaymentRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Vérifie la signature renvoyée par la passerelle après paiement.
    - 200 {data: order} si la signature correspond (ou si déjà vérifiée avec la même paire)
    - 400 {data: order} si la signature ne correspond pas: commande passée en 'failed'
    """
    result = payments_service.verify_payment(
        body.order_id,
        user["id"],
        body.intent_id,
        body.payment_id,
        body.signature,
    )
    return JSONResponse(status_code=200 if result.success else 400, content=result.to_dict())

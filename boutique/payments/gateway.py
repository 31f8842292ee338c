"""
Adaptateur passerelle de paiement (API compatible Razorpay): centralise appels et configuration.
- create_intent: POST /v1/orders, montant TOUJOURS dérivé de order.total_amount
- verify_signature: HMAC-SHA256(secret, "intent_id|payment_id") en hex, comparé en temps constant
"""
from typing import Any, Dict, Optional
import hashlib
import hmac
import logging
import httpx
from boutique import config
from boutique.orders.models import to_minor_units
from boutique.utils.errors import GatewayUnavailable

logger = logging.getLogger(__name__)

# module boutique.payments.gateway
def require_gateway() -> None:
    """Les clés doivent être présentes; sinon l'erreur est réessayable (configuration en cours)."""
    if not config.RAZORPAY_KEY_ID or not config.RAZORPAY_KEY_SECRET:
        logger.error("payments.gateway: RAZORPAY_KEY_ID/RAZORPAY_KEY_SECRET manquants")
        raise GatewayUnavailable()

def receipt_for(order: Dict[str, Any]) -> str:
    # Référence limitée à 40 caractères côté passerelle
    return f"order_{order.get('id')}"[:40]

def create_intent(order: Dict[str, Any]) -> Dict[str, Any]:
    """
    Crée l'intent distant pour une commande.
    Retour: {"intent_id", "amount_minor_units", "currency"}
    Erreurs: GatewayUnavailable (timeout, réseau, statut non 2xx, réponse incohérente).
    """
    require_gateway()
    amount = to_minor_units(order["total_amount"])
    payload = {
        "amount": amount,
        "currency": config.PAYMENT_CURRENCY,
        "receipt": receipt_for(order),
        "payment_capture": 1,
    }
    try:
        resp = httpx.post(
            f"{config.GATEWAY_BASE_URL}/v1/orders",
            json=payload,
            auth=(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET),
            timeout=config.GATEWAY_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as e:
        logger.exception("payments.gateway.create_intent failed order_id=%s", order.get("id"))
        raise GatewayUnavailable() from e

    if not 200 <= resp.status_code < 300:
        logger.error("payments.gateway.create_intent status=%s order_id=%s body=%s", resp.status_code, order.get("id"), resp.text[:200])
        raise GatewayUnavailable()

    try:
        data = resp.json()
    except ValueError as e:
        logger.exception("payments.gateway.create_intent invalid JSON order_id=%s", order.get("id"))
        raise GatewayUnavailable() from e

    intent_id = data.get("id")
    if not intent_id or int(data.get("amount") or 0) != amount:
        logger.error("payments.gateway.create_intent inconsistent response order_id=%s amount=%s", order.get("id"), data.get("amount"))
        raise GatewayUnavailable()
    return {
        "intent_id": intent_id,
        "amount_minor_units": amount,
        "currency": data.get("currency") or config.PAYMENT_CURRENCY,
    }

def compute_signature(intent_id: str, payment_id: str, secret: Optional[str] = None) -> str:
    key = (secret if secret is not None else config.RAZORPAY_KEY_SECRET).encode("utf-8")
    message = f"{intent_id}|{payment_id}".encode("utf-8")
    return hmac.new(key, message, hashlib.sha256).hexdigest()

def verify_signature(intent_id: str, payment_id: str, supplied_signature: str) -> bool:
    """Seule preuve acceptée qu'un paiement a eu lieu."""
    if not config.RAZORPAY_KEY_SECRET or not intent_id or not payment_id or not supplied_signature:
        return False
    expected = compute_signature(intent_id, payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), str(supplied_signature).encode("utf-8"))

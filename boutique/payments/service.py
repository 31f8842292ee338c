"""
Cas d'usage 'payments': relie la passerelle de paiement à la machine à états des commandes.

- create_intent_for_order: crée l'intent distant (montant serveur) et mémorise son id
- verify_payment: recalcule la signature; paid seulement si elle correspond à l'intent mémorisé
Toutes les transitions passent par des mises à jour conditionnelles sur payment_status:
une double vérification concurrente ne produit qu'un seul passage à 'paid'.
"""
from typing import Any, Dict
import logging

from boutique import config
from boutique.auth import repository as users_repository
from boutique.notifications import service as notifier
from boutique.orders import repository as orders_repository
from boutique.orders import state
from boutique.orders.models import to_minor_units
from boutique.payments import gateway
from boutique.payments.models import PaymentVerification
from boutique.utils.errors import AlreadyPaid, Conflict, Forbidden, NotFound

logger = logging.getLogger(__name__)

VERIFICATION_FAILED = "Vérification du paiement échouée, veuillez réessayer le paiement"

def load_owned_order(order_id: str, user_id: str) -> Dict[str, Any]:
    order = orders_repository.get_order(order_id)
    if not order:
        raise NotFound("Commande introuvable")
    if str(order.get("user_id")) != str(user_id):
        raise Forbidden("Non autorisé")
    return order

def create_intent_for_order(order_id: str, user_id: str) -> Dict[str, Any]:
    """
    Crée un intent de paiement pour une commande du client.
    - 404/403 si la commande n'existe pas / n'est pas au client
    - AlreadyPaid si la commande est payée
    - GatewayUnavailable (réessayable) si la passerelle échoue: la commande reste pending
    Une commande 'pending' qui a déjà un intent le réutilise (double clic, retry client):
    le client ne peut payer qu'un intent que la commande reconnaît.
    Une commande 'failed' repasse 'pending' avec un nouvel intent.
    """
    order = load_owned_order(order_id, user_id)
    current = order.get("payment_status") or state.PAYMENT_PENDING
    state.check_payment_transition(current, state.PAYMENT_PENDING)
    if order.get("order_status") == state.ORDER_CANCELLED:
        raise Conflict("Commande annulée")

    recorded_intent = order.get("gateway_intent_id")
    if current == state.PAYMENT_PENDING and recorded_intent:
        logger.info("payments.create_intent reuse order_id=%s intent_id=%s", order_id, recorded_intent)
        return {
            "intentId": recorded_intent,
            "amount": to_minor_units(order["total_amount"]),
            "currency": config.PAYMENT_CURRENCY,
            "keyId": config.RAZORPAY_KEY_ID,
        }

    intent = gateway.create_intent(order)
    updated = orders_repository.update_order(
        order_id,
        {"gateway_intent_id": intent["intent_id"], "payment_status": state.PAYMENT_PENDING},
        payment_status_in=state.payment_sources(state.PAYMENT_PENDING),
    )
    if not updated:
        # Payée entre la lecture et l'écriture
        raise AlreadyPaid()

    logger.info("payments.create_intent order_id=%s intent_id=%s amount=%s", order_id, intent["intent_id"], intent["amount_minor_units"])
    return {
        "intentId": intent["intent_id"],
        "amount": intent["amount_minor_units"],
        "currency": intent["currency"],
        "keyId": config.RAZORPAY_KEY_ID,
    }

def _same_settlement(order: Dict[str, Any], intent_id: str, payment_id: str) -> bool:
    return order.get("gateway_intent_id") == intent_id and order.get("payment_id") == payment_id

def _send_confirmation(order: Dict[str, Any], user_id: str) -> None:
    try:
        user = users_repository.get_user_by_id(user_id) or {}
        notifier.send_quietly(
            {"email": user.get("email"), "name": user.get("name")},
            "order-confirmation",
            {"order": order},
        )
    except Exception:
        logger.exception("payments.verify_payment confirmation email failed order_id=%s", order.get("id"))

def verify_payment(order_id: str, user_id: str, intent_id: str, payment_id: str, signature: str) -> PaymentVerification:
    """
    Vérifie un retour de paiement:
    1) 404 / 403 selon existence et propriété
    2) commande déjà payée: succès sans effet si même (intent, payment) et signature valide,
       sinon AlreadyPaid
    3) signature invalide (ou intent différent de celui mémorisé): payment_status=failed,
       order_status inchangé, résultat en échec (pas d'exception)
    4) signature valide: paid + processing, payment_id et signature enregistrés, email envoyé
       une seule fois (par la requête qui a effectué la transition)
    """
    order = load_owned_order(order_id, user_id)

    if order.get("payment_status") == state.PAYMENT_PAID:
        if _same_settlement(order, intent_id, payment_id) and gateway.verify_signature(intent_id, payment_id, signature):
            return PaymentVerification(True, order, already_processed=True)
        raise AlreadyPaid()

    recorded_intent = order.get("gateway_intent_id")
    if not recorded_intent:
        raise Conflict("Aucun intent de paiement créé pour cette commande")

    valid = intent_id == recorded_intent and gateway.verify_signature(intent_id, payment_id, signature)
    if not valid:
        logger.warning("payments.verify_payment signature mismatch order_id=%s intent_id=%s", order_id, intent_id)
        failed = orders_repository.update_order(
            order_id,
            {"payment_status": state.PAYMENT_FAILED},
            payment_status_in=state.payment_sources(state.PAYMENT_FAILED),
        )
        if failed is None:
            current = orders_repository.get_order(order_id) or order
            return PaymentVerification(False, current, error=VERIFICATION_FAILED)
        return PaymentVerification(False, failed, error=VERIFICATION_FAILED)

    changes = {
        "payment_status": state.PAYMENT_PAID,
        "order_status": state.ORDER_PROCESSING,
        "payment_id": payment_id,
        "gateway_signature": signature,
    }
    updated = orders_repository.update_order(
        order_id,
        changes,
        payment_status_in=state.payment_sources(state.PAYMENT_PAID),
        intent_id=intent_id,
    )
    if updated is None:
        current = orders_repository.get_order(order_id) or {}
        if current.get("payment_status") == state.PAYMENT_PAID and _same_settlement(current, intent_id, payment_id):
            return PaymentVerification(True, current, already_processed=True)
        raise Conflict("La commande a changé pendant la vérification, veuillez réessayer")

    logger.info("payments.verify_payment paid order_id=%s payment_id=%s", order_id, payment_id)
    _send_confirmation(updated, user_id)
    return PaymentVerification(True, updated)

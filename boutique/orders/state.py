"""
Machine à états des commandes.

Deux axes indépendants:
- payment_status: pending -> paid | failed; failed est réessayable; paid est terminal.
  Seul le module payments fait avancer cet axe (création d'intent, vérification de signature).
- order_status: avancé par le staff. Toute valeur connue peut être posée depuis
  n'importe quelle autre (aucun ordre imposé, comportement historique conservé).
"""
from typing import FrozenSet, List
from boutique.utils.errors import AlreadyPaid, InvalidTransition, ValidationFailed

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED)

ORDER_PENDING = "pending"
ORDER_PROCESSING = "processing"
ORDER_SHIPPED = "shipped"
ORDER_DELIVERED = "delivered"
ORDER_CANCELLED = "cancelled"
ORDER_STATUSES = (ORDER_PENDING, ORDER_PROCESSING, ORDER_SHIPPED, ORDER_DELIVERED, ORDER_CANCELLED)

PAYMENT_TRANSITIONS = {
    # pending -> pending: (re)création d'un intent
    PAYMENT_PENDING: frozenset({PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED}),
    PAYMENT_FAILED: frozenset({PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED}),
    PAYMENT_PAID: frozenset(),
}

def allowed_payment_targets(current: str) -> FrozenSet[str]:
    return PAYMENT_TRANSITIONS.get(current, frozenset())

def payment_sources(target: str) -> List[str]:
    """Statuts depuis lesquels `target` est atteignable (filtre des mises à jour conditionnelles)."""
    return [status for status in PAYMENT_STATUSES if target in PAYMENT_TRANSITIONS[status]]

def can_transition_payment(current: str, target: str) -> bool:
    return target in allowed_payment_targets(current)

def check_payment_transition(current: str, target: str) -> None:
    if can_transition_payment(current, target):
        return
    if current == PAYMENT_PAID:
        raise AlreadyPaid()
    raise InvalidTransition(f"Transition de paiement interdite: {current} -> {target}")

def check_order_status(value: str) -> str:
    status = (value or "").strip().lower()
    if status not in ORDER_STATUSES:
        raise ValidationFailed("Statut invalide", fields=[{"field": "status", "message": f"Valeurs possibles: {', '.join(ORDER_STATUSES)}"}])
    return status

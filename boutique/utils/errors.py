"""
Taxonomie d'erreurs métier de la boutique.

Chaque classe porte son code HTTP et un code machine stable; le handler global
(boutique.app_setup.exceptions) les convertit en JSON sans jamais exposer d'erreur interne.
- Validation: rejet avant tout effet de bord, détail par champ dans `fields`.
- Conflict: rejet métier (stock, produit inactif, commande déjà payée).
- Authorization: Forbidden / NotFound.
- ExternalServiceError: dépendance externe indisponible, toujours `retryable`.
"""
from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    status_code = 500
    code = "error"
    retryable = False
    default_detail = "Erreur interne, veuillez réessayer"

    def __init__(self, detail: Optional[str] = None, fields: Optional[List[Dict[str, Any]]] = None):
        self.detail = detail or self.default_detail
        self.fields = fields or []
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.detail, "code": self.code, "retryable": self.retryable}
        if self.fields:
            body["errors"] = self.fields
        return body


# --- Validation ---

class ValidationFailed(ServiceError):
    status_code = 400
    code = "validation_error"
    default_detail = "Données invalides"


class InvalidOrExpiredOTP(ServiceError):
    status_code = 400
    code = "invalid_or_expired_otp"
    default_detail = "OTP invalide ou expiré"


# --- Autorisation / existence ---

class NotFound(ServiceError):
    status_code = 404
    code = "not_found"
    default_detail = "Ressource introuvable"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"
    default_detail = "Accès interdit"


class Unauthorized(ServiceError):
    status_code = 401
    code = "unauthorized"
    default_detail = "Non authentifié"


class ProductUnavailable(NotFound):
    code = "product_unavailable"
    default_detail = "Produit indisponible"

    def __init__(self, product_id: str, detail: Optional[str] = None):
        self.product_id = product_id
        super().__init__(detail or f"Produit indisponible: {product_id}")


# --- Conflits métier ---

class Conflict(ServiceError):
    status_code = 400
    code = "conflict"
    default_detail = "Opération impossible dans l'état actuel"


class EmptyCart(Conflict):
    code = "empty_cart"
    default_detail = "Panier vide"


class InsufficientStock(Conflict):
    code = "insufficient_stock"

    def __init__(self, product_id: str, name: Optional[str] = None, available: int = 0, requested: int = 0):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(f"Stock insuffisant pour {name or product_id}")


class StockContention(Conflict):
    code = "stock_contention"
    retryable = True
    default_detail = "Stock en cours de mise à jour, veuillez réessayer"


class AlreadyPaid(Conflict):
    code = "already_paid"
    default_detail = "Commande déjà payée"


class InvalidTransition(Conflict):
    code = "invalid_transition"


# --- Dépendances externes (toujours réessayables) ---

class ExternalServiceError(ServiceError):
    status_code = 503
    code = "external_service_error"
    retryable = True
    default_detail = "Service temporairement indisponible, veuillez réessayer"


class GatewayUnavailable(ExternalServiceError):
    code = "gateway_unavailable"
    default_detail = "Passerelle de paiement indisponible, veuillez réessayer"


class NotificationFailed(ExternalServiceError):
    code = "notification_failed"
    default_detail = "L'email n'a pas pu être envoyé, veuillez réessayer"


class StorageUnavailable(ExternalServiceError):
    code = "storage_unavailable"
    default_detail = "Base de données indisponible, veuillez réessayer"

# module boutique.admin.service
"""
Promotion d'un utilisateur au rôle admin, en deux étapes protégées par OTP.

1) request_promotion: OTP envoyé à l'email de l'admin qui agit (pas à la cible)
2) verify_promotion: le code est vérifié contre ce même admin, puis la cible devient admin
Le code consommé appartient toujours à l'acteur de l'action privilégiée.
"""
from typing import Any, Dict
import logging

from boutique.auth import repository as users_repository
from boutique.otp import service as otp_service
from boutique.utils.errors import InvalidOrExpiredOTP, NotFound
from boutique.utils.security import ROLE_ADMIN

logger = logging.getLogger(__name__)

def request_promotion(admin: Dict[str, Any]) -> None:
    profile = users_repository.get_user_by_id(admin["id"]) or {}
    owner = {
        "id": admin["id"],
        "email": profile.get("email") or admin.get("email"),
        "name": profile.get("name") or admin.get("name"),
    }
    otp_service.issue_and_deliver(owner, otp_service.PURPOSE_ADMIN_PROMOTION)
    logger.info("admin.request_promotion otp sent admin_id=%s", admin["id"])

def verify_promotion(admin_id: str, otp: str, target_user_id: str) -> Dict[str, Any]:
    """
    - NotFound si la cible n'existe pas (vérifié avant l'OTP pour ne pas brûler le code)
    - InvalidOrExpiredOTP sans distinguer absent / expiré / faux
    """
    target = users_repository.get_user_by_id(target_user_id)
    if not target:
        raise NotFound("Utilisateur cible introuvable")

    result = otp_service.verify(admin_id, otp_service.PURPOSE_ADMIN_PROMOTION, otp)
    if not result.success:
        logger.info("admin.verify_promotion rejected admin_id=%s reason=%s", admin_id, result.error)
        raise InvalidOrExpiredOTP()

    updated = users_repository.set_user_role(target_user_id, ROLE_ADMIN)
    if not updated:
        raise NotFound("Utilisateur cible introuvable")
    logger.warning("admin.verify_promotion promoted target_id=%s by admin_id=%s", target_user_id, admin_id)
    return updated

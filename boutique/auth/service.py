from typing import Any, Dict
import logging
import bcrypt

from boutique import config
from boutique.auth import repository
from boutique.otp import service as otp_service
from boutique.utils.errors import Forbidden, InvalidOrExpiredOTP, NotFound, Unauthorized
from boutique.utils.security import ROLE_ADMIN, determine_role

logger = logging.getLogger(__name__)

# --- Intégration sécurité / profil ---

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Résout le token Supabase puis l'enrichit avec le profil applicatif (table users):
    - Retourne {id, email, name, role, is_active, token}
    - Sans profil: rôle customer, compte actif
    """
    raw = repository.get_auth_user(access_token)
    uid = raw.get("id")
    profile = repository.get_user_by_id(uid) if uid else None
    profile = profile or {}
    return {
        "id": uid,
        "email": profile.get("email") or raw.get("email"),
        "name": profile.get("name"),
        "role": determine_role(profile),
        "is_active": profile.get("is_active", True),
        "token": access_token,
    }

# --- Mot de passe oublié (OTP par email) ---

def forgot_password(email: str) -> None:
    """Émet un OTP de réinitialisation et l'envoie à l'adresse du compte.
    - NotFound si aucun compte ne correspond
    - NotificationFailed si l'email ne part pas (le code est alors révoqué)
    """
    user = repository.get_user_by_email(email)
    if not user:
        raise NotFound("Aucun compte associé à cet email")
    otp_service.issue_and_deliver(user, otp_service.PURPOSE_PASSWORD_RESET)
    logger.info("auth.forgot_password otp sent user_id=%s", user.get("id"))

def reset_password(email: str, otp: str, new_password: str) -> None:
    """Vérifie l'OTP du compte puis change le mot de passe.
    Le client ne distingue jamais: compte inconnu, code absent, expiré ou faux.
    """
    user = repository.get_user_by_email(email)
    if not user:
        raise InvalidOrExpiredOTP()
    result = otp_service.verify(user["id"], otp_service.PURPOSE_PASSWORD_RESET, otp)
    if not result.success:
        logger.info("auth.reset_password rejected user_id=%s reason=%s", user.get("id"), result.error)
        raise InvalidOrExpiredOTP()
    repository.update_auth_password(user["id"], new_password)
    logger.info("auth.reset_password done user_id=%s", user.get("id"))

# --- Premier administrateur ---

def _setup_key_matches(setup_key: str) -> bool:
    key_hash = config.ADMIN_SETUP_KEY_HASH
    if not key_hash or not setup_key:
        return False
    try:
        return bcrypt.checkpw(setup_key.encode("utf-8"), key_hash.encode("utf-8"))
    except ValueError:
        logger.error("auth.setup_admin: ADMIN_SETUP_KEY_HASH n'est pas un hash bcrypt valide")
        return False

def setup_admin(user: Dict[str, Any], setup_key: str) -> Dict[str, Any]:
    """Promeut l'utilisateur courant en admin tant qu'aucun admin n'existe.
    - Forbidden dès qu'un admin existe (le workflow de promotion prend le relais)
    - Unauthorized si la clé ne correspond pas au hash bcrypt configuré
    """
    if repository.has_admin():
        raise Forbidden("Un administrateur existe déjà")
    if not _setup_key_matches(setup_key):
        raise Unauthorized("Clé d'initialisation invalide")
    updated = repository.set_user_role(user["id"], ROLE_ADMIN)
    if not updated:
        raise NotFound("Profil utilisateur introuvable")
    logger.warning("auth.setup_admin first admin created user_id=%s", user["id"])
    return updated

"""Accès aux profils utilisateurs (table 'users') et à l'API admin de Supabase Auth."""
from typing import Any, Dict, Optional
import logging
import httpx
import boutique.infra.supabase_client as supabase_client
from boutique.config import SUPABASE_URL, SUPABASE_SERVICE_KEY
from boutique.utils.errors import StorageUnavailable, ExternalServiceError

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, email, name, role, is_active"

def _first_user(column: str, value: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("users")
            .select(USER_COLUMNS)
            .eq(column, value)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("auth.repository lookup failed %s=%s", column, value)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    if not user_id:
        return None
    return _first_user("id", str(user_id))

def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    email = (email or "").strip().lower()
    if not email:
        return None
    return _first_user("email", email)

def set_user_role(user_id: str, role: str) -> Optional[Dict[str, Any]]:
    """Met à jour users.role et retourne la ligne modifiée (None si l'utilisateur n'existe pas)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("users")
            .update({"role": role})
            .eq("id", str(user_id))
            .execute()
        )
    except Exception as e:
        logger.exception("auth.repository.set_user_role failed user_id=%s role=%s", user_id, role)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

def has_admin() -> bool:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("users")
            .select("id")
            .eq("role", "admin")
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("auth.repository.has_admin failed")
        raise StorageUnavailable() from e
    return bool(res.data)

def get_auth_user(access_token: str) -> Dict[str, Any]:
    """Résout un access_token via supabase.auth.get_user et normalise {id, email}."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {"id": getattr(user, "id", None), "email": getattr(user, "email", None)}
    return user or {}

def update_auth_password(user_id: str, new_password: str) -> None:
    """
    Change le mot de passe via l'API admin GoTrue (PUT /auth/v1/admin/users/{id}).
    Timeout borné; toute erreur réseau ou statut non 2xx remonte en ExternalServiceError.
    """
    url = f"{SUPABASE_URL}/auth/v1/admin/users/{user_id}"
    headers = {
        "Authorization": f"Bearer {SUPABASE_SERVICE_KEY}",
        "apikey": SUPABASE_SERVICE_KEY,
        "Content-Type": "application/json",
    }
    try:
        resp = httpx.put(url, json={"password": new_password}, headers=headers, timeout=10)
    except httpx.HTTPError as e:
        logger.exception("auth.repository.update_auth_password failed user_id=%s", user_id)
        raise ExternalServiceError() from e
    if not 200 <= resp.status_code < 300:
        logger.error("auth.repository.update_auth_password status=%s user_id=%s", resp.status_code, user_id)
        raise ExternalServiceError("Mise à jour du mot de passe impossible, veuillez réessayer")

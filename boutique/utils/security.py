from fastapi import Request, HTTPException, Depends
from typing import Optional, Dict, Any


COOKIE_NAME = "sb_access"
ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"

def determine_role(profile: Optional[Dict[str, Any]]) -> str:
    """Rôle applicatif issu du profil (table users): 'admin' ou 'customer' par défaut."""
    if str((profile or {}).get("role", "")).lower() == ROLE_ADMIN:
        return ROLE_ADMIN
    return ROLE_CUSTOMER

def extract_token(request: Request) -> Optional[str]:
    # Priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def get_current_user(request: Request) -> Dict[str, Any]:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")

    try:
        from boutique.auth.service import get_user_from_token as _svc_get_user_from_token
        user = _svc_get_user_from_token(token)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")

    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    if user.get("is_active") is False:
        raise HTTPException(status_code=403, detail="Compte désactivé")
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user

from fastapi import APIRouter, Depends
from typing import Dict, Any

from boutique.utils.security import require_user
from boutique.utils.rate_limit import optional_rate_limit
from boutique.auth import service as auth_service
from boutique.auth.models import ForgotPasswordRequest, ResetPasswordRequest, SetupAdminRequest

# --- API Router (/api/v1/auth) ---

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

@api_router.get("/me")
def api_me(user: Dict[str, Any] = Depends(require_user)):
    """Retourne l'utilisateur courant (id, email, nom, rôle) après contrôle de session via require_user."""
    return {"id": user["id"], "email": user["email"], "name": user.get("name"), "role": user["role"]}

@api_router.post("/forgot-password", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_forgot_password(req: ForgotPasswordRequest):
    """Envoie un code de réinitialisation (valable 10 minutes par défaut) à l'email du compte."""
    auth_service.forgot_password(req.email)
    return {"success": True, "message": "Code de réinitialisation envoyé par email"}

@api_router.post("/reset-password", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_reset_password(req: ResetPasswordRequest):
    auth_service.reset_password(req.email, req.otp, req.new_password)
    return {"success": True, "message": "Mot de passe mis à jour"}

@api_router.post("/setup-admin")
def api_setup_admin(req: SetupAdminRequest, user: Dict[str, Any] = Depends(require_user)):
    """Initialisation unique du premier administrateur (clé vérifiée par bcrypt)."""
    profile = auth_service.setup_admin(user, req.setup_key)
    return {"success": True, "message": "Compte promu administrateur", "data": profile}

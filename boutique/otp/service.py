"""
Service OTP unique pour tous les parcours sensibles (reset de mot de passe, promotion admin).

Un code est identifié par (owner_id, purpose):
- issue: génère un code numérique, stocke son hash et son expiration, écrase le précédent
- verify: not_found / expired / mismatch, ou succès avec consommation (usage unique)
- issue_and_deliver: issue + envoi par email; si l'envoi échoue, le code est révoqué
Comparaison en temps constant (hmac.compare_digest) sur les hash.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import hashlib
import hmac
import logging
import re
import secrets

from boutique import config
from boutique.otp import repository
from boutique.notifications import service as notifier

logger = logging.getLogger(__name__)

PURPOSE_PASSWORD_RESET = "password-reset"
PURPOSE_ADMIN_PROMOTION = "admin-promotion"

OTP_NOT_FOUND = "not_found"
OTP_EXPIRED = "expired"
OTP_MISMATCH = "mismatch"

# PostgREST tronque les zéros finaux des microsecondes (".12345+00:00")
_FRACTION_RE = re.compile(r"\.(\d+)")


class OTPResult:
    def __init__(self, success: bool, error: Optional[str] = None):
        self.success = success
        self.error = error

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return f"OTPResult(success={self.success!r}, error={self.error!r})"


def default_ttl(purpose: str) -> int:
    if purpose == PURPOSE_PASSWORD_RESET:
        return config.PASSWORD_RESET_OTP_TTL_SECONDS
    if purpose == PURPOSE_ADMIN_PROMOTION:
        return config.PROMOTION_OTP_TTL_SECONDS
    raise ValueError(f"Usage OTP inconnu: {purpose}")

def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)

def _hash(code: str) -> str:
    return hashlib.sha256(str(code).strip().encode("utf-8")).hexdigest()

def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip().replace("Z", "+00:00")
        # fromisoformat (3.10) n'accepte que 3 ou 6 chiffres de fraction
        text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts

def generate_code(length: Optional[int] = None) -> str:
    length = length or config.OTP_LENGTH
    return "".join(str(secrets.randbelow(10)) for _ in range(length))

def issue(owner_id: str, purpose: str, ttl: Optional[int] = None, now: Optional[datetime] = None) -> str:
    """Émet un nouveau code pour (owner_id, purpose) et le retourne (à livrer par l'appelant)."""
    ttl_seconds = ttl if ttl is not None else default_ttl(purpose)
    code = generate_code()
    expires_at = _now(now) + timedelta(seconds=ttl_seconds)
    repository.upsert_code(str(owner_id), purpose, _hash(code), expires_at.isoformat())
    logger.info("otp.issue owner_id=%s purpose=%s ttl=%s", owner_id, purpose, ttl_seconds)
    return code

def revoke(owner_id: str, purpose: str) -> None:
    repository.delete_code(str(owner_id), purpose)

def verify(owner_id: str, purpose: str, supplied_code: str, now: Optional[datetime] = None) -> OTPResult:
    """
    Vérifie un code:
    - not_found: aucun code en attente (jamais émis, déjà consommé ou révoqué)
    - expired: now >= expires_at (le code expiré est supprimé)
    - mismatch: code différent; après OTP_MAX_ATTEMPTS échecs, le code est révoqué
    - succès: le code est consommé atomiquement (un seul vérificateur gagne)
    """
    owner_id = str(owner_id)
    row = repository.get_code(owner_id, purpose)
    if not row:
        return OTPResult(False, OTP_NOT_FOUND)

    if _now(now) >= _parse_ts(row.get("expires_at")):
        repository.delete_code(owner_id, purpose)
        return OTPResult(False, OTP_EXPIRED)

    stored_hash = str(row.get("code_hash") or "")
    supplied_hash = _hash(supplied_code or "")
    if not hmac.compare_digest(stored_hash, supplied_hash):
        attempts = int(row.get("attempts") or 0) + 1
        if attempts >= config.OTP_MAX_ATTEMPTS:
            logger.warning("otp.verify too many attempts owner_id=%s purpose=%s", owner_id, purpose)
            repository.delete_code(owner_id, purpose)
        else:
            repository.increment_attempts(owner_id, purpose, attempts)
        return OTPResult(False, OTP_MISMATCH)

    if not repository.consume_code(owner_id, purpose, stored_hash):
        # Consommé (ou remplacé) par une requête concurrente
        return OTPResult(False, OTP_NOT_FOUND)
    return OTPResult(True)

def issue_and_deliver(
    owner: Dict[str, Any],
    purpose: str,
    ttl: Optional[int] = None,
    now: Optional[datetime] = None,
) -> None:
    """
    Émet un code pour `owner` ({id, email, name}) et l'envoie par email.
    Si l'envoi échoue, le code est révoqué puis NotificationFailed est propagée.
    """
    ttl_seconds = ttl if ttl is not None else default_ttl(purpose)
    code = issue(owner["id"], purpose, ttl=ttl_seconds, now=now)
    try:
        notifier.send(
            {"email": owner.get("email"), "name": owner.get("name")},
            purpose,
            {"code": code, "ttl_seconds": ttl_seconds},
        )
    except Exception:
        logger.warning("otp.issue_and_deliver delivery failed, revoking owner_id=%s purpose=%s", owner.get("id"), purpose)
        revoke(owner["id"], purpose)
        raise

"""
Stockage des OTP (table 'otp_codes', clé unique (owner_id, purpose)).
Seul le hash SHA-256 du code est persisté.
"""
from typing import Any, Dict, Optional
import logging
import boutique.infra.supabase_client as supabase_client
from boutique.utils.errors import StorageUnavailable

logger = logging.getLogger(__name__)

def _table():
    return supabase_client.get_service_supabase().table("otp_codes")

def upsert_code(owner_id: str, purpose: str, code_hash: str, expires_at: str) -> None:
    """Écrase tout code en attente pour (owner_id, purpose)."""
    payload = {
        "owner_id": owner_id,
        "purpose": purpose,
        "code_hash": code_hash,
        "expires_at": expires_at,
        "attempts": 0,
    }
    try:
        _table().upsert(payload, on_conflict="owner_id,purpose").execute()
    except Exception as e:
        logger.exception("otp.repository.upsert_code failed owner_id=%s purpose=%s", owner_id, purpose)
        raise StorageUnavailable() from e

def get_code(owner_id: str, purpose: str) -> Optional[Dict[str, Any]]:
    try:
        res = _table().select("*").eq("owner_id", owner_id).eq("purpose", purpose).limit(1).execute()
    except Exception as e:
        logger.exception("otp.repository.get_code failed owner_id=%s purpose=%s", owner_id, purpose)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

def consume_code(owner_id: str, purpose: str, code_hash: str) -> bool:
    """
    Supprime le code seulement s'il correspond encore à `code_hash`.
    Retourne True pour l'unique appelant qui a effectivement consommé le code.
    """
    try:
        res = (
            _table()
            .delete()
            .eq("owner_id", owner_id)
            .eq("purpose", purpose)
            .eq("code_hash", code_hash)
            .execute()
        )
    except Exception as e:
        logger.exception("otp.repository.consume_code failed owner_id=%s purpose=%s", owner_id, purpose)
        raise StorageUnavailable() from e
    return bool(res.data)

def delete_code(owner_id: str, purpose: str) -> None:
    try:
        _table().delete().eq("owner_id", owner_id).eq("purpose", purpose).execute()
    except Exception as e:
        logger.exception("otp.repository.delete_code failed owner_id=%s purpose=%s", owner_id, purpose)
        raise StorageUnavailable() from e

def increment_attempts(owner_id: str, purpose: str, attempts: int) -> None:
    try:
        _table().update({"attempts": attempts}).eq("owner_id", owner_id).eq("purpose", purpose).execute()
    except Exception as e:
        logger.exception("otp.repository.increment_attempts failed owner_id=%s purpose=%s", owner_id, purpose)
        raise StorageUnavailable() from e

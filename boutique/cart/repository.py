"""Accès aux paniers (table 'carts': une ligne par utilisateur, items en JSON)."""
from typing import Any, Dict, List, Optional
import logging
import boutique.infra.supabase_client as supabase_client
from boutique.utils.errors import StorageUnavailable

logger = logging.getLogger(__name__)

def get_cart(user_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select("user_id, items, updated_at")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("cart.repository.get_cart failed user_id=%s", user_id)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

def save_items(user_id: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Crée ou remplace le contenu du panier et retourne la ligne écrite."""
    payload = {"user_id": str(user_id), "items": items}
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .upsert(payload, on_conflict="user_id")
            .execute()
        )
    except Exception as e:
        logger.exception("cart.repository.save_items failed user_id=%s", user_id)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else payload

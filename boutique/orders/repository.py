"""
Accès aux commandes (table 'orders').
Les lignes (items) ne sont jamais réécrites après insertion; seules les colonnes de statut,
d'identifiants passerelle et de suivi évoluent, via des mises à jour conditionnelles.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import boutique.infra.supabase_client as supabase_client
from boutique.utils.errors import StorageUnavailable

logger = logging.getLogger(__name__)

def _table():
    return supabase_client.get_service_supabase().table("orders")

def insert_order(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        res = _table().insert(payload).execute()
    except Exception as e:
        logger.exception("orders.repository.insert_order failed user_id=%s", payload.get("user_id"))
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    if not order_id:
        return None
    try:
        res = _table().select("*").eq("id", str(order_id)).limit(1).execute()
    except Exception as e:
        logger.exception("orders.repository.get_order failed order_id=%s", order_id)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

def list_user_orders(user_id: str) -> List[Dict[str, Any]]:
    try:
        res = _table().select("*").eq("user_id", str(user_id)).order("created_at", desc=True).execute()
    except Exception as e:
        logger.exception("orders.repository.list_user_orders failed user_id=%s", user_id)
        raise StorageUnavailable() from e
    return res.data or []

def list_orders(status: Optional[str], offset: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
    """Liste paginée (plus récentes d'abord) + total exact pour la console admin."""
    try:
        query = _table().select("*, users(name, email)", count="exact")
        if status:
            query = query.eq("order_status", status)
        res = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
    except Exception as e:
        logger.exception("orders.repository.list_orders failed status=%s", status)
        raise StorageUnavailable() from e
    rows = res.data or []
    total = res.count if res.count is not None else len(rows)
    return rows, total

def update_order(
    order_id: str,
    changes: Dict[str, Any],
    payment_status_in: Optional[Iterable[str]] = None,
    intent_id: Optional[str] = None,
    stock_released: Optional[bool] = None,
) -> Optional[Dict[str, Any]]:
    """
    Mise à jour conditionnelle: n'écrit que si payment_status est dans `payment_status_in`
    (et gateway_intent_id == intent_id, stock_released == stock_released si fournis).
    Retourne la ligne écrite ou None si la condition n'était plus vraie (requête concurrente gagnante).
    """
    try:
        query = _table().update(changes).eq("id", str(order_id))
        if payment_status_in is not None:
            query = query.in_("payment_status", list(payment_status_in))
        if intent_id is not None:
            query = query.eq("gateway_intent_id", intent_id)
        if stock_released is not None:
            query = query.eq("stock_released", stock_released)
        res = query.execute()
    except Exception as e:
        logger.exception("orders.repository.update_order failed order_id=%s", order_id)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

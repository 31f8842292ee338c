"""
Accès aux données du catalogue (table 'products'), en lecture seule sauf pour le stock.
Les échecs de stockage sont loggés puis remontés en StorageUnavailable (réessayable),
pour ne jamais confondre « produit introuvable » et « base indisponible ».
"""
from typing import Any, Dict, Iterable, Optional
import logging
import boutique.infra.supabase_client as supabase_client
from boutique.utils.errors import StorageUnavailable

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = "id, name, price, stock, is_active"

# module boutique.catalog.repository
def get_product(product_id: str) -> Optional[Dict[str, Any]]:
    """Retourne {id, name, price, stock, is_active} ou None si le produit n'existe pas."""
    if not product_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("products")
            .select(PRODUCT_COLUMNS)
            .eq("id", str(product_id))
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("catalog.repository.get_product failed product_id=%s", product_id)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

def get_products_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Charge plusieurs produits en une requête: {id: produit}. Les ids inconnus sont absents."""
    id_list = sorted({str(i) for i in ids if i})
    if not id_list:
        return {}
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("products")
            .select(PRODUCT_COLUMNS)
            .in_("id", id_list)
            .execute()
        )
    except Exception as e:
        logger.exception("catalog.repository.get_products_map failed ids=%s", id_list)
        raise StorageUnavailable() from e
    return {str(p.get("id")): p for p in (res.data or [])}

def compare_and_set_stock(product_id: str, expected: int, new_value: int) -> bool:
    """
    Écrit stock=new_value seulement si le stock vaut encore `expected`.
    Retourne False si une autre requête a modifié le stock entre-temps (aucune ligne touchée).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("products")
            .update({"stock": int(new_value)})
            .eq("id", str(product_id))
            .eq("stock", int(expected))
            .execute()
        )
    except Exception as e:
        logger.exception("catalog.repository.compare_and_set_stock failed product_id=%s", product_id)
        raise StorageUnavailable() from e
    return bool(res.data)

"""
Réservation de stock atomique au moment du checkout.

Chaque produit est décrémenté par compare-and-swap sur products.stock: deux checkouts
concurrents ne peuvent pas consommer la même unité. En cas d'échec partiel, les
réservations déjà prises sont rendues (ordre inverse).
"""
from typing import Dict
import logging
from boutique.catalog import repository
from boutique.utils.errors import InsufficientStock, ProductUnavailable, StockContention

logger = logging.getLogger(__name__)

MAX_CAS_RETRIES = 5

def _stock_of(product) -> int:
    try:
        return int(product.get("stock") or 0)
    except (TypeError, ValueError):
        return 0

def reserve_product(product_id: str, quantity: int) -> None:
    """Décrémente le stock de `quantity` unités ou lève InsufficientStock/ProductUnavailable/StockContention."""
    for _ in range(MAX_CAS_RETRIES):
        product = repository.get_product(product_id)
        if not product or not product.get("is_active", True):
            raise ProductUnavailable(product_id)
        current = _stock_of(product)
        if current < quantity:
            raise InsufficientStock(product_id, product.get("name"), available=current, requested=quantity)
        if repository.compare_and_set_stock(product_id, current, current - quantity):
            return
    logger.warning("catalog.reserve_product contention product_id=%s quantity=%s", product_id, quantity)
    raise StockContention()

def release_product(product_id: str, quantity: int) -> bool:
    """Rend `quantity` unités au stock. Retourne False si la restitution n'a pas pu être écrite."""
    for _ in range(MAX_CAS_RETRIES):
        product = repository.get_product(product_id)
        if not product:
            break
        current = _stock_of(product)
        if repository.compare_and_set_stock(product_id, current, current + quantity):
            return True
    logger.error("catalog.release_product failed product_id=%s quantity=%s", product_id, quantity)
    return False

def reserve_stock(quantities: Dict[str, int]) -> Dict[str, int]:
    """
    Réserve toutes les quantités {product_id: qty} ou aucune.
    Retourne les quantités réservées (à passer à release_stock en cas d'abandon).
    """
    reserved: Dict[str, int] = {}
    try:
        for product_id, qty in quantities.items():
            reserve_product(product_id, qty)
            reserved[product_id] = qty
    except Exception:
        release_stock(reserved)
        raise
    return reserved

def release_stock(reserved: Dict[str, int]) -> None:
    """Libère une réservation, produit par produit, en ordre inverse; les échecs sont loggés."""
    for product_id, qty in reversed(list(reserved.items())):
        try:
            release_product(product_id, qty)
        except Exception:
            logger.exception("catalog.release_stock failed product_id=%s quantity=%s", product_id, qty)

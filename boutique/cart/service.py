"""
Cas d'usage 'cart': mutations du panier et résolution du snapshot de checkout.

Clé d'unicité d'une ligne: (product_id, size, color). Les contrôles de stock faits ici
sont indicatifs; le checkout revérifie tout (resolve_snapshot) puis réserve le stock.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
import logging

from boutique.cart import repository
from boutique.catalog import repository as catalog
from boutique.utils.errors import (
    EmptyCart,
    InsufficientStock,
    NotFound,
    ProductUnavailable,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

# module boutique.cart.service
def _variant(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip() if isinstance(value, str) else value
    return value or None

def _same_line(item: Dict[str, Any], product_id: str, size: Optional[str], color: Optional[str]) -> bool:
    return (
        str(item.get("product_id")) == str(product_id)
        and _variant(item.get("size")) == _variant(size)
        and _variant(item.get("color")) == _variant(color)
    )

def to_price(value: Any) -> Decimal:
    """Prix en Decimal (str|float|int acceptés); 0 si illisible."""
    try:
        return Decimal(str(value if value is not None else 0))
    except (InvalidOperation, ValueError):
        return Decimal("0")

def _available(product: Optional[Dict[str, Any]], product_id: str) -> Dict[str, Any]:
    if not product or not product.get("is_active", True):
        raise ProductUnavailable(product_id, "Produit introuvable")
    return product

def _check_quantity(quantity: Any) -> int:
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        qty = 0
    if qty < 1:
        raise ValidationFailed(fields=[{"field": "quantity", "message": "La quantité doit être au moins 1"}])
    return qty

def get_cart(user_id: str) -> Dict[str, Any]:
    """Retourne le panier de l'utilisateur, créé à la volée s'il n'existe pas encore."""
    cart = repository.get_cart(user_id)
    if cart is None:
        cart = repository.save_items(user_id, [])
    cart["items"] = list(cart.get("items") or [])
    return cart

def add_item(user_id: str, product_id: str, quantity: int, size: Optional[str] = None, color: Optional[str] = None) -> Dict[str, Any]:
    """Ajoute un produit (ou incrémente la ligne existante), quantité plafonnée au stock courant."""
    qty = _check_quantity(quantity)
    product = _available(catalog.get_product(product_id), product_id)
    stock = int(product.get("stock") or 0)
    if stock < qty:
        raise InsufficientStock(product_id, product.get("name"), available=stock, requested=qty)

    items = get_cart(user_id)["items"]
    for item in items:
        if _same_line(item, product_id, size, color):
            item["quantity"] = min(int(item.get("quantity") or 0) + qty, stock)
            break
    else:
        items.append({
            "product_id": str(product_id),
            "quantity": min(qty, stock),
            "size": _variant(size),
            "color": _variant(color),
            "price": float(to_price(product.get("price"))),
        })
    return repository.save_items(user_id, items)

def update_item(user_id: str, product_id: str, quantity: int, size: Optional[str] = None, color: Optional[str] = None) -> Dict[str, Any]:
    qty = _check_quantity(quantity)
    cart = repository.get_cart(user_id)
    if cart is None:
        raise NotFound("Panier introuvable")
    items = list(cart.get("items") or [])
    line = next((it for it in items if _same_line(it, product_id, size, color)), None)
    if line is None:
        raise NotFound("Produit absent du panier")

    product = _available(catalog.get_product(product_id), product_id)
    stock = int(product.get("stock") or 0)
    if stock < qty:
        raise InsufficientStock(product_id, product.get("name"), available=stock, requested=qty)
    line["quantity"] = qty
    return repository.save_items(user_id, items)

def remove_item(user_id: str, product_id: str, size: Optional[str] = None, color: Optional[str] = None) -> Dict[str, Any]:
    """Retire une variante précise si size/color est fourni, sinon toutes les lignes du produit."""
    cart = repository.get_cart(user_id)
    if cart is None:
        raise NotFound("Panier introuvable")
    items = list(cart.get("items") or [])
    if _variant(size) or _variant(color):
        kept = [it for it in items if not _same_line(it, product_id, size, color)]
    else:
        kept = [it for it in items if str(it.get("product_id")) != str(product_id)]
    return repository.save_items(user_id, kept)

def merge_items(user_id: str, guest_items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Fusionne un panier invité dans le panier serveur.
    - Produits chargés en une requête; lignes invalides, produits inconnus ou inactifs ignorés
    - Quantités cumulées puis plafonnées au stock courant
    """
    items = get_cart(user_id)["items"]
    if not guest_items:
        return {"user_id": str(user_id), "items": items}

    ids = [str(it.get("productId") or it.get("product_id") or "") for it in guest_items]
    products = catalog.get_products_map([i for i in ids if i])

    for it in guest_items:
        product_id = str(it.get("productId") or it.get("product_id") or "")
        try:
            qty = int(it.get("quantity") or 0)
        except (TypeError, ValueError):
            qty = 0
        if not product_id or qty <= 0:
            continue
        product = products.get(product_id)
        if not product or not product.get("is_active", True):
            continue
        stock = int(product.get("stock") or 0)
        size, color = _variant(it.get("size")), _variant(it.get("color"))
        existing = next((line for line in items if _same_line(line, product_id, size, color)), None)
        if existing is not None:
            existing["quantity"] = min(int(existing.get("quantity") or 0) + qty, stock)
        else:
            items.append({
                "product_id": product_id,
                "quantity": min(qty, stock),
                "size": size,
                "color": color,
                "price": float(to_price(product.get("price"))),
            })
    items = [line for line in items if int(line.get("quantity") or 0) > 0]
    return repository.save_items(user_id, items)

def clear_cart(user_id: str) -> Dict[str, Any]:
    return repository.save_items(user_id, [])

def aggregate_quantities(lines: List[Dict[str, Any]]) -> Dict[str, int]:
    """Agrège des lignes en {product_id: quantité totale} (les variantes partagent le stock du produit)."""
    quantities: Dict[str, int] = {}
    for line in lines or []:
        product_id = str(line.get("product_id") or "").strip()
        qty = int(line.get("quantity") or 0)
        if not product_id or qty <= 0:
            continue
        quantities[product_id] = quantities.get(product_id, 0) + qty
    return quantities

def resolve_snapshot(user_id: str) -> Dict[str, Any]:
    """
    Résout le panier en lignes tarifées et vérifiées au moment du checkout.
    - EmptyCart si aucun article
    - ProductUnavailable si un produit a disparu ou est inactif
    - InsufficientStock si le stock courant < quantité demandée (toutes variantes cumulées)
    - unit_price = prix catalogue COURANT; le prix mémorisé dans le panier est ignoré
    Retour: {"lines": [...], "subtotal": Decimal, "quantities": {product_id: qty}}
    """
    cart = repository.get_cart(user_id)
    raw_items = [it for it in (cart or {}).get("items") or [] if int(it.get("quantity") or 0) > 0]
    if not raw_items:
        raise EmptyCart()

    quantities = aggregate_quantities(raw_items)
    products = catalog.get_products_map(quantities.keys())

    for product_id, qty in quantities.items():
        product = products.get(product_id)
        if not product or not product.get("is_active", True):
            raise ProductUnavailable(product_id)
        stock = int(product.get("stock") or 0)
        if stock < qty:
            raise InsufficientStock(product_id, product.get("name"), available=stock, requested=qty)

    lines: List[Dict[str, Any]] = []
    subtotal = Decimal("0")
    for it in raw_items:
        product = products[str(it["product_id"])]
        unit_price = to_price(product.get("price"))
        qty = int(it["quantity"])
        subtotal += unit_price * qty
        lines.append({
            "product_id": str(it["product_id"]),
            "name": product.get("name") or "",
            "quantity": qty,
            "unit_price": unit_price,
            "size": _variant(it.get("size")),
            "color": _variant(it.get("color")),
        })
    return {"lines": lines, "subtotal": subtotal, "quantities": quantities}

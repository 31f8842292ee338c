"""Gabarits des emails transactionnels: (sujet, texte, html) par usage."""
from html import escape
from typing import Any, Dict, Tuple

def otp_email(name: str, code: str, ttl_seconds: int, action: str) -> Tuple[str, str, str]:
    minutes = ttl_seconds // 60
    validity = f"{minutes} minute(s)" if minutes else f"{ttl_seconds} secondes"
    text = f"Bonjour {name or ''}, votre code à usage unique pour {action} est : {code}. Il expire dans {validity}."
    html = (
        f"<p>Bonjour {escape(name or '')},</p>"
        f"<p>Votre code à usage unique pour {escape(action)} :</p>"
        f"<p style=\"font-size:24px;letter-spacing:4px\"><strong>{escape(str(code))}</strong></p>"
        f"<p>Ce code expire dans {validity}. Si vous n'êtes pas à l'origine de cette demande, ignorez cet email.</p>"
    )
    return text, html, validity

def password_reset(payload: Dict[str, Any]) -> Tuple[str, str, str]:
    text, html, _ = otp_email(payload.get("name", ""), payload["code"], int(payload["ttl_seconds"]), "réinitialiser votre mot de passe")
    return "Code de réinitialisation du mot de passe - ATELIER", text, html

def admin_promotion(payload: Dict[str, Any]) -> Tuple[str, str, str]:
    text, html, _ = otp_email(payload.get("name", ""), payload["code"], int(payload["ttl_seconds"]), "promouvoir un utilisateur administrateur")
    return "Double authentification - promotion administrateur", text, html

def order_confirmation(payload: Dict[str, Any]) -> Tuple[str, str, str]:
    order = payload["order"]
    lines = order.get("items") or []
    order_id = escape(str(order.get("id")))
    total = escape(str(order.get("total_amount")))
    rows = "".join(
        f"<tr><td>{escape(str(it.get('name') or it.get('product_id')))}</td>"
        f"<td>{escape(str(it.get('quantity')))}</td><td>{escape(str(it.get('unit_price')))}</td></tr>"
        for it in lines
    )
    text = f"Commande {order.get('id')} confirmée. Montant payé : {order.get('total_amount')}."
    html = (
        f"<p>Merci {escape(payload.get('name') or '')} !</p>"
        f"<p>Votre commande <strong>{order_id}</strong> est confirmée.</p>"
        f"<table><tr><th>Article</th><th>Qté</th><th>Prix unitaire</th></tr>{rows}</table>"
        f"<p>Total TTC : <strong>{total}</strong></p>"
    )
    return f"Confirmation de commande {order.get('id')}", text, html

TEMPLATES = {
    "password-reset": password_reset,
    "admin-promotion": admin_promotion,
    "order-confirmation": order_confirmation,
}

"""
Notifier: envoi des emails transactionnels via l'API Brevo (httpx, timeout borné).
- send(contact, purpose, payload) lève NotificationFailed en cas d'échec: c'est à
  l'appelant de décider (révoquer un OTP, ou simplement logger pour une confirmation).
- send_quietly(...) est la variante « fire-and-forget » (log, jamais d'exception).
"""
from typing import Any, Dict
import logging
import httpx
from boutique import config
from boutique.notifications.templates import TEMPLATES
from boutique.utils.errors import NotificationFailed

logger = logging.getLogger(__name__)

def send(contact: Dict[str, Any], purpose: str, payload: Dict[str, Any]) -> None:
    """
    contact: {"email": ..., "name": ...}
    purpose: clé de TEMPLATES ("password-reset", "admin-promotion", "order-confirmation")
    """
    email = (contact or {}).get("email")
    if not email:
        raise NotificationFailed("Adresse email manquante")
    if not config.BREVO_API_KEY or not config.BREVO_SENDER_EMAIL:
        logger.error("notifications.send: BREVO_API_KEY/BREVO_SENDER_EMAIL non configurés purpose=%s", purpose)
        raise NotificationFailed()
    render = TEMPLATES.get(purpose)
    if render is None:
        raise ValueError(f"Usage de notification inconnu: {purpose}")
    subject, text, html = render({**payload, "name": contact.get("name") or ""})

    body = {
        "sender": {"name": config.BREVO_SENDER_NAME, "email": config.BREVO_SENDER_EMAIL},
        "to": [{"email": email, "name": contact.get("name") or ""}],
        "subject": subject,
        "htmlContent": html,
        "textContent": text,
    }
    headers = {"api-key": config.BREVO_API_KEY, "Content-Type": "application/json", "Accept": "application/json"}
    try:
        resp = httpx.post(config.BREVO_API_URL, json=body, headers=headers, timeout=config.EMAIL_TIMEOUT_SECONDS)
    except httpx.HTTPError as e:
        logger.exception("notifications.send failed purpose=%s", purpose)
        raise NotificationFailed() from e
    if not 200 <= resp.status_code < 300:
        logger.error("notifications.send status=%s purpose=%s body=%s", resp.status_code, purpose, resp.text[:200])
        raise NotificationFailed()
    logger.info("notifications.send ok purpose=%s", purpose)

def send_quietly(contact: Dict[str, Any], purpose: str, payload: Dict[str, Any]) -> bool:
    try:
        send(contact, purpose, payload)
        return True
    except Exception:
        logger.exception("notifications.send_quietly failed purpose=%s", purpose)
        return False

import re
from typing import Any, Dict, List

PINCODE_RE = re.compile(r"^[0-9]{6}$")
REQUIRED_ADDRESS_FIELDS = ("street", "city", "state", "pincode")

def validate_password_strength(v: str) -> str:
    if not re.search(r'[A-Z]', v):
        raise ValueError('Le mot de passe doit contenir au moins une majuscule')
    if not re.search(r'[a-z]', v):
        raise ValueError('Le mot de passe doit contenir au moins une minuscule')
    if not re.search(r'\d', v):
        raise ValueError('Le mot de passe doit contenir au moins un chiffre')
    if not re.search(r'[!@#$%^&*()_+\-=\[\]{};:\'\"\\|,.<>\/?]', v):
        raise ValueError('Le mot de passe doit contenir au moins un caractère spécial')
    return v

def shipping_address_errors(address: Any) -> List[Dict[str, str]]:
    """
    Liste les erreurs (par champ) d'une adresse de livraison.
    - street, city, state, pincode obligatoires et non vides
    - pincode: exactement 6 chiffres
    Retourne [] si l'adresse est valide.
    """
    if not isinstance(address, dict) or not address:
        return [{"field": "shippingAddress", "message": "Adresse de livraison requise"}]
    errors: List[Dict[str, str]] = []
    for field in REQUIRED_ADDRESS_FIELDS:
        value = str(address.get(field) or "").strip()
        if not value:
            errors.append({"field": f"shippingAddress.{field}", "message": f"{field} est requis"})
    pincode = str(address.get("pincode") or "").strip()
    if pincode and not PINCODE_RE.match(pincode):
        errors.append({"field": "shippingAddress.pincode", "message": "Le code postal doit contenir 6 chiffres"})
    return errors

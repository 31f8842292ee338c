# boutique.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Chemin du projet puis chargement explicite du .env
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, passerelle de paiement, Brevo)
- Expose les durées de vie des OTP et les réglages sécurité (cookies, CORS/hosts)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces, guillemets simples/doubles et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

# Supabase: URL et clés (anon pour l'auth utilisateur, service pour les écritures serveur)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Passerelle de paiement (API compatible Razorpay: /v1/orders + signature HMAC)
RAZORPAY_KEY_ID = _clean_env(os.getenv("RAZORPAY_KEY_ID") or "")
RAZORPAY_KEY_SECRET = _clean_env(os.getenv("RAZORPAY_KEY_SECRET") or os.getenv("RAZORPAY_SECRET") or "")
GATEWAY_BASE_URL = _clean_env(os.getenv("GATEWAY_BASE_URL") or "https://api.razorpay.com").rstrip("/")
GATEWAY_TIMEOUT_SECONDS = _int_env("GATEWAY_TIMEOUT_SECONDS", 10)
PAYMENT_CURRENCY = _clean_env(os.getenv("PAYMENT_CURRENCY") or "INR")

# Emails transactionnels (Brevo)
BREVO_API_KEY = _clean_env(os.getenv("BREVO_API_KEY") or "")
BREVO_API_URL = _clean_env(os.getenv("BREVO_API_URL") or "https://api.brevo.com/v3/smtp/email")
BREVO_SENDER_EMAIL = _clean_env(os.getenv("BREVO_SENDER_EMAIL") or "")
BREVO_SENDER_NAME = _clean_env(os.getenv("BREVO_SENDER_NAME") or "ATELIER")
EMAIL_TIMEOUT_SECONDS = _int_env("EMAIL_TIMEOUT_SECONDS", 10)

# OTP: durées de vie par usage (secondes), longueur et tentatives
PASSWORD_RESET_OTP_TTL_SECONDS = _int_env("PASSWORD_RESET_OTP_TTL_SECONDS", 10 * 60)
PROMOTION_OTP_TTL_SECONDS = _int_env("PROMOTION_OTP_TTL_SECONDS", 50)
OTP_LENGTH = _int_env("OTP_LENGTH", 6)
OTP_MAX_ATTEMPTS = _int_env("OTP_MAX_ATTEMPTS", 5)

# Initialisation du premier admin: hash bcrypt de la clé (jamais la clé en clair)
ADMIN_SETUP_KEY_HASH = _clean_env(os.getenv("ADMIN_SETUP_KEY_HASH", ""))

# Cookies / CORS / hosts
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

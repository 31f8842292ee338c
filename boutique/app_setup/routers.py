"""
Registre central des routers.
- API v1: auth, cart, orders, payment, admin
- Health: health_router
"""
from fastapi import FastAPI
from boutique.auth.views import api_router as auth_api_router
from boutique.cart import views as cart_views
from boutique.orders import views as orders_views
from boutique.payments import views as payments_views
from boutique.admin.views import router as admin_router
from boutique.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(auth_api_router)
    app.include_router(cart_views.router)
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    # Admin
    app.include_router(admin_router)
    # Health & monitoring
    app.include_router(health_router)

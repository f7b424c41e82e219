"""FastAPI dependency providers: services bound to the injected database, and admin guards"""
from typing import Optional

from fastapi import Depends, Header
from pymongo.database import Database

from admin import AdminService, has_role
from blog import BlogService
from cart import CartService
from catalog import ProductCatalog
from config import get_settings
from database import get_db
from errors import Forbidden, Unauthorized
from orders import OrderService


def get_catalog(db: Database = Depends(get_db)) -> ProductCatalog:
    return ProductCatalog(db)


def get_cart_service(db: Database = Depends(get_db),
                     catalog: ProductCatalog = Depends(get_catalog)) -> CartService:
    return CartService(db, catalog)


def get_order_service(db: Database = Depends(get_db),
                      catalog: ProductCatalog = Depends(get_catalog)) -> OrderService:
    return OrderService(db, catalog, get_settings())


def get_admin_service(db: Database = Depends(get_db)) -> AdminService:
    return AdminService(db, get_settings())


def get_blog_service(db: Database = Depends(get_db)) -> BlogService:
    return BlogService(db)


def _extract_token(authorization: Optional[str], admintoken: Optional[str]) -> Optional[str]:
    token = admintoken or authorization
    if not token:
        return None
    if token.lower().startswith("bearer "):
        token = token[7:]
    return token.strip() or None


def optional_admin(authorization: Optional[str] = Header(None),
                   admintoken: Optional[str] = Header(None),
                   service: AdminService = Depends(get_admin_service)) -> Optional[dict]:
    return service.resolve_caller(_extract_token(authorization, admintoken))


def require_admin(authorization: Optional[str] = Header(None),
                  admintoken: Optional[str] = Header(None),
                  service: AdminService = Depends(get_admin_service)) -> dict:
    token = _extract_token(authorization, admintoken)
    if not token:
        raise Unauthorized("Unauthorized - No token provided")
    admin = service.resolve_caller(token)
    if not admin:
        raise Unauthorized("Unauthorized - Invalid token")
    return admin


def require_role(*roles: str):
    def checker(admin: dict = Depends(require_admin)) -> dict:
        if not has_role(admin, roles):
            raise Forbidden("Forbidden - Insufficient permissions")
        return admin
    return checker

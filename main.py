import os
import logging
from typing import Optional
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import database
from admin import AdminService, public_admin
from blog import BlogService
from cart import CartService
from catalog import ProductCatalog
from config import get_settings, setup_logging
from deps import (
    get_admin_service,
    get_blog_service,
    get_cart_service,
    get_catalog,
    get_order_service,
    optional_admin,
    require_admin,
    require_role,
)
from errors import ShopError
from orders import OrderService
from schemas import (
    AddToCartRequest,
    AdminCreate,
    AdminUpdate,
    Blog,
    BlogUpdate,
    CreateOrderRequest,
    LoginRequest,
    OrderStatusUpdate,
    Product,
    ProductUpdate,
    SyncCartRequest,
    UpdateCartItemRequest,
)
from validation import first_error

setup_logging(os.getenv("LOG_LEVEL", "INFO").upper())
settings = get_settings()
logger = logging.getLogger(__name__)

app = FastAPI(title="Grainly Shop API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Utilities
def ok(message: str, **payload):
    return {"success": True, "message": message, **payload}


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": first_error(exc), "errors": [e.get("msg") for e in exc.errors()]},
    )


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Database error"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


@app.get("/")
def root():
    return {"message": "Grainly Shop Backend is running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": []
    }
    db = database.db
    if db is None:
        response["database"] = "⚠️ Available but not initialized"
        return response
    response["database"] = "✅ Available"
    response["connection_status"] = "Connected"
    try:
        collections = db.list_collection_names()
        response["collections"] = collections[:10]
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response


# Connect and seed minimal demo data if empty
@app.on_event("startup")
def startup():
    db = database.connect(settings.DATABASE_URL, settings.DATABASE_NAME)
    database.ensure_indexes(db)
    if settings.SEED_DEMO_DATA:
        seed_products(ProductCatalog(db))
    if settings.SEED_ADMIN_USERNAME and settings.SEED_ADMIN_PASSWORD:
        AdminService(db, settings).ensure_seed_admin(
            settings.SEED_ADMIN_USERNAME, settings.SEED_ADMIN_PASSWORD, settings.SEED_ADMIN_EMAIL
        )


@app.on_event("shutdown")
def shutdown():
    database.close()


def seed_products(catalog: ProductCatalog):
    if catalog.collection.count_documents({}) > 0:
        return
    sample = [
        {
            "itemName": "Grainly Cream of Rice",
            "flavour": "Vanilla Ice Cream",
            "description": "Smooth cream of rice cooked in minutes, lightly sweetened with vanilla.",
            "shortDescription": "Vanilla cream of rice",
            "price": 899,
            "discountPrice": 749,
            "stock": 120,
            "category": "Classic",
            "images": [
                "https://images.unsplash.com/photo-1551782450-a2132b4ba21d?q=80&w=1200&auto=format&fit=crop",
            ],
            "tags": ["breakfast", "rice"],
        },
        {
            "itemName": "Grainly Cream of Rice",
            "flavour": "Tiramisu",
            "description": "Coffee and cocoa layered into a warm bowl of cream of rice.",
            "shortDescription": "Tiramisu cream of rice",
            "price": 949,
            "stock": 80,
            "category": "Decadent",
            "images": [
                "https://images.unsplash.com/photo-1571877227200-a0d98ea607e9?q=80&w=1200&auto=format&fit=crop",
            ],
            "tags": ["dessert", "coffee"],
        },
        {
            "itemName": "Grainly Pre-workout",
            "flavour": "Blue Raspberry",
            "description": "Fast digesting carbohydrate blend for training days.",
            "shortDescription": "Blue raspberry pre-workout",
            "price": 1299,
            "discountPrice": 1099,
            "stock": 60,
            "category": "Pre-workout / Sports Nutrition",
            "images": [],
            "tags": ["sports", "energy"],
        },
    ]
    for product in sample:
        catalog.create(product)
    logger.info("Seeded %d demo products", len(sample))


# Catalog endpoints
@app.get("/api/products")
def list_products(category: Optional[str] = None, q: Optional[str] = None, active: bool = False,
                  catalog: ProductCatalog = Depends(get_catalog)):
    return ok("Products fetched", products=catalog.list(category=category, q=q, active_only=active))


@app.get("/api/products/flavours")
def list_flavours(catalog: ProductCatalog = Depends(get_catalog)):
    return ok("Flavours fetched", products=catalog.flavours())


@app.get("/api/products/{product_id}")
def get_product(product_id: str, catalog: ProductCatalog = Depends(get_catalog)):
    return ok("Product fetched", product=catalog.get(product_id))


@app.post("/api/products", status_code=201)
def create_product(payload: Product, catalog: ProductCatalog = Depends(get_catalog),
                   admin: dict = Depends(require_admin)):
    return ok("Product created successfully", product=catalog.create(payload))


@app.put("/api/products/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, catalog: ProductCatalog = Depends(get_catalog),
                   admin: dict = Depends(require_admin)):
    return ok("Product updated successfully", product=catalog.update(product_id, payload))


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, catalog: ProductCatalog = Depends(get_catalog),
                   admin: dict = Depends(require_admin)):
    catalog.delete(product_id)
    return ok("Product deleted successfully")


# Cart endpoints (session based)
@app.get("/api/cart/{session_id}")
def get_cart(session_id: str, carts: CartService = Depends(get_cart_service)):
    return ok("Cart fetched", cart=carts.get_or_create(session_id))


@app.post("/api/cart/{session_id}/add")
def add_to_cart(session_id: str, payload: AddToCartRequest, carts: CartService = Depends(get_cart_service)):
    return ok("Item added to cart", cart=carts.add_item(session_id, payload.productId, payload.quantity))


@app.put("/api/cart/{session_id}/update/{product_id}")
def update_cart_item(session_id: str, product_id: str, payload: UpdateCartItemRequest,
                     carts: CartService = Depends(get_cart_service)):
    return ok("Cart updated", cart=carts.update_item(session_id, product_id, payload.quantity))


@app.delete("/api/cart/{session_id}/remove/{product_id}")
def remove_from_cart(session_id: str, product_id: str, carts: CartService = Depends(get_cart_service)):
    return ok("Item removed from cart", cart=carts.remove_item(session_id, product_id))


@app.delete("/api/cart/{session_id}/clear")
def clear_cart(session_id: str, carts: CartService = Depends(get_cart_service)):
    return ok("Cart cleared", cart=carts.clear(session_id))


@app.post("/api/cart/{session_id}/sync")
def sync_cart(session_id: str, payload: SyncCartRequest, carts: CartService = Depends(get_cart_service)):
    return ok("Cart synced successfully", cart=carts.sync(session_id, payload.items))


# Order endpoints
@app.post("/api/orders/create", status_code=201)
def create_order(payload: CreateOrderRequest, orders: OrderService = Depends(get_order_service)):
    order = orders.create(
        payload.sessionId,
        payload.shippingAddress,
        payment_method=payload.paymentMethod.value if payload.paymentMethod else None,
        notes=payload.notes,
        currency=payload.currency,
    )
    return ok("Order created successfully", order=order)


@app.get("/api/orders/session/{session_id}")
def list_session_orders(session_id: str, orders: OrderService = Depends(get_order_service)):
    return ok("Orders fetched", orders=orders.list_by_session(session_id))


@app.get("/api/orders")
def list_orders(status: Optional[str] = None, page: int = Query(1, ge=1), limit: int = Query(50, ge=1, le=200),
                orders: OrderService = Depends(get_order_service), admin: dict = Depends(require_admin)):
    return ok("Orders fetched", **orders.list_all(status=status, page=page, limit=limit))


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, orders: OrderService = Depends(get_order_service)):
    return ok("Order fetched", order=orders.get(order_id))


@app.put("/api/orders/{order_id}/status")
def update_order_status(order_id: str, payload: OrderStatusUpdate,
                        orders: OrderService = Depends(get_order_service), admin: dict = Depends(require_admin)):
    order = orders.update_status(
        order_id,
        order_status=payload.orderStatus.value if payload.orderStatus else None,
        payment_status=payload.paymentStatus.value if payload.paymentStatus else None,
    )
    return ok("Order updated successfully", order=order)


@app.put("/api/orders/{order_id}/cancel")
def cancel_order(order_id: str, orders: OrderService = Depends(get_order_service)):
    return ok("Order cancelled successfully", order=orders.cancel(order_id))


# Blog endpoints
@app.get("/api/blogs")
def list_blogs(category: Optional[str] = None, featured: Optional[bool] = None, published: bool = True,
               status: Optional[str] = None, author: Optional[str] = None, search: Optional[str] = None,
               tags: Optional[str] = None, page: int = Query(1, ge=1), limit: int = Query(20, ge=1),
               sortBy: str = "createdAt", sortOrder: str = "desc", blogs: BlogService = Depends(get_blog_service)):
    result = blogs.list(category=category, featured=featured, published=published, status=status,
                        author=author, search=search, tags=tags, page=page, limit=limit,
                        sort_by=sortBy, sort_order=sortOrder)
    return ok("Blogs fetched", **result)


@app.get("/api/blogs/featured")
def featured_blogs(blogs: BlogService = Depends(get_blog_service)):
    return ok("Featured blogs fetched", blogs=blogs.featured())


@app.get("/api/blogs/category/{category}")
def blogs_by_category(category: str, blogs: BlogService = Depends(get_blog_service)):
    return ok("Blogs fetched", blogs=blogs.by_category(category))


@app.get("/api/blogs/{blog_id}")
def get_blog(blog_id: str, incrementViews: bool = False, blogs: BlogService = Depends(get_blog_service),
             admin: Optional[dict] = Depends(optional_admin)):
    blog = blogs.get(blog_id, increment_views=incrementViews, include_unpublished=admin is not None)
    return ok("Blog fetched", blog=blog)


@app.post("/api/blogs", status_code=201)
def create_blog(payload: Blog, blogs: BlogService = Depends(get_blog_service),
                admin: dict = Depends(require_admin)):
    return ok("Blog created successfully", blog=blogs.create(payload, author_name=admin.get("name")))


@app.put("/api/blogs/{blog_id}")
def update_blog(blog_id: str, payload: BlogUpdate, blogs: BlogService = Depends(get_blog_service),
                admin: dict = Depends(require_admin)):
    return ok("Blog updated successfully", blog=blogs.update(blog_id, payload))


@app.delete("/api/blogs/{blog_id}")
def delete_blog(blog_id: str, blogs: BlogService = Depends(get_blog_service),
                admin: dict = Depends(require_admin)):
    blogs.delete(blog_id)
    return ok("Blog deleted successfully")


# Admin endpoints
@app.post("/api/admin/login")
def admin_login(payload: LoginRequest, admins: AdminService = Depends(get_admin_service)):
    return ok("Login successful", **admins.login(payload.username, payload.password))


@app.get("/api/admin/profile")
def admin_profile(admin: dict = Depends(require_admin)):
    return ok("Profile fetched", admin=public_admin(admin))


@app.get("/api/admin/dashboard/stats")
def dashboard_stats(admins: AdminService = Depends(get_admin_service), admin: dict = Depends(require_admin)):
    return ok("Stats fetched", **admins.dashboard_stats())


@app.post("/api/admin/create", status_code=201)
def create_admin(payload: AdminCreate, admins: AdminService = Depends(get_admin_service),
                 admin: dict = Depends(require_role("super-admin"))):
    return ok("Admin created successfully", admin=admins.create_admin(payload))


@app.get("/api/admin/all")
def list_admins(admins: AdminService = Depends(get_admin_service),
                admin: dict = Depends(require_role("super-admin"))):
    return ok("Admins fetched", admins=admins.list_admins())


@app.put("/api/admin/{admin_id}")
def update_admin(admin_id: str, payload: AdminUpdate, admins: AdminService = Depends(get_admin_service),
                 admin: dict = Depends(require_role("super-admin"))):
    return ok("Admin updated successfully", admin=admins.update_admin(admin_id, payload))


@app.delete("/api/admin/{admin_id}")
def delete_admin(admin_id: str, admins: AdminService = Depends(get_admin_service),
                 admin: dict = Depends(require_role("super-admin"))):
    admins.delete_admin(admin_id, admin)
    return ok("Admin deleted successfully")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)

"""
Database Schemas for the Grainly shop

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase class name. Request bodies live at the
bottom of the module and are validated again by the services that use them.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator


class ProductCategory(str, Enum):
    CLASSIC = "Classic"
    DECADENT = "Decadent"
    GLOBAL_DELICIOUS = "Global Delicious"
    SPORTS_NUTRITION = "Pre-workout / Sports Nutrition"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"
    WALLET = "wallet"


class AdminRole(str, Enum):
    SUPER_ADMIN = "super-admin"
    ADMIN = "admin"
    EDITOR = "editor"


class BlogCategory(str, Enum):
    NUTRITION = "Nutrition"
    RECIPES = "Recipes"
    HEALTH = "Health"
    LIFESTYLE = "Lifestyle"
    TIPS = "Tips"
    PRODUCT_NEWS = "Product News"
    WELLNESS = "Wellness"
    FITNESS = "Fitness"
    COOKING = "Cooking"
    REVIEWS = "Reviews"


class BlogStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


def split_tags(value):
    """Accept tags as a list or as a comma separated string"""
    if value is None:
        return value
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return value


class Document(BaseModel):
    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)


# Catalog

class Product(Document):
    itemName: str = Field(..., min_length=1, description="Product name")
    flavour: str = Field(..., min_length=1, description="Flavour name, also used as a URL alias")
    description: str = Field(..., min_length=1, description="Full description")
    shortDescription: str = Field(..., min_length=1, max_length=200, description="Card description")
    price: float = Field(..., gt=0, description="Regular price")
    discountPrice: Optional[float] = Field(None, ge=0, description="Selling price when discounted")
    stock: int = Field(0, ge=0, description="Units in stock")
    category: ProductCategory = Field(..., description="Product category")
    tags: List[str] = Field(default_factory=list, description="Search tags")
    image: str = Field("", description="Primary image URL")
    images: List[str] = Field(default_factory=list, description="Image URLs")
    isActive: bool = Field(True, description="Whether the product is listed")
    brand: Optional[str] = None
    netQuantity: str = ""
    itemForm: str = ""
    itemWeight: str = ""
    dimensions: str = ""
    specialIngredients: str = ""
    dietType: str = ""
    productBenefits: List[str] = Field(default_factory=list)
    directions: List[str] = Field(default_factory=list)
    precautions: List[str] = Field(default_factory=list)
    keyFeatures: List[str] = Field(default_factory=list)
    warnings: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value):
        return split_tags(value)

    @model_validator(mode="after")
    def check_discount(self):
        if self.discountPrice is not None and self.discountPrice >= self.price:
            raise ValueError("Discount price must be less than regular price")
        return self


class ProductUpdate(Document):
    itemName: Optional[str] = Field(None, min_length=1)
    flavour: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    shortDescription: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, gt=0)
    discountPrice: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    category: Optional[ProductCategory] = None
    tags: Optional[List[str]] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    isActive: Optional[bool] = None
    brand: Optional[str] = None
    netQuantity: Optional[str] = None
    itemForm: Optional[str] = None
    itemWeight: Optional[str] = None
    dimensions: Optional[str] = None
    specialIngredients: Optional[str] = None
    dietType: Optional[str] = None
    productBenefits: Optional[List[str]] = None
    directions: Optional[List[str]] = None
    precautions: Optional[List[str]] = None
    keyFeatures: Optional[List[str]] = None
    warnings: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value):
        return split_tags(value)


# Cart

class CartItem(Document):
    productId: str = Field(..., description="Product document id as string")
    name: str = Field(..., description="Snapshot of the product name")
    flavour: str = Field("", description="Snapshot of the product flavour")
    price: float = Field(..., ge=0, description="Unit price at the time the item was added")
    image: str = Field("", description="Snapshot of the first product image")
    quantity: int = Field(1, ge=1, le=99, description="Quantity of the product")


class Cart(Document):
    sessionId: str = Field(..., min_length=1, description="Client session id")
    items: List[CartItem] = Field(default_factory=list)
    totalItems: int = Field(0, ge=0, description="Sum of quantities, derived")
    subtotal: float = Field(0, ge=0, description="Sum of price x quantity, derived")


# Orders

class OrderItem(Document):
    productId: str
    name: str
    flavour: str = ""
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: str = ""


class ShippingAddress(Document):
    fullName: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: Optional[str] = None
    zipCode: str = Field(..., min_length=1)
    country: str = Field("India", min_length=1)


class Order(Document):
    orderNumber: str = Field(..., description="Human readable order number")
    sessionId: str = Field(..., description="Session the order was placed from")
    items: List[OrderItem] = Field(..., min_length=1, description="Frozen line items")
    shippingAddress: ShippingAddress
    subtotal: float = Field(..., ge=0)
    shippingCost: float = Field(0, ge=0)
    tax: float = Field(0, ge=0)
    total: float = Field(..., ge=0)
    currency: str = Field("INR")
    paymentStatus: PaymentStatus = PaymentStatus.PENDING
    orderStatus: OrderStatus = OrderStatus.PENDING
    paymentMethod: PaymentMethod = PaymentMethod.COD
    notes: Optional[str] = Field(None, max_length=1000)


# Admins

class Admin(Document):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., description="Argon2 hash, never returned")
    name: str = Field(..., min_length=1)
    role: AdminRole = AdminRole.ADMIN
    active: bool = True


# Blog

class BlogAuthor(Document):
    name: str = Field("Grainly Team", max_length=100)
    avatar: str = ""
    bio: str = Field("", max_length=300)


class BlogSeo(Document):
    metaTitle: Optional[str] = Field(None, max_length=60)
    metaDescription: Optional[str] = Field(None, max_length=160)
    keywords: List[str] = Field(default_factory=list)


class Blog(Document):
    title: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9-]+$")
    excerpt: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=100)
    image: str = ""
    author: BlogAuthor = Field(default_factory=BlogAuthor)
    category: BlogCategory = BlogCategory.NUTRITION
    tags: List[str] = Field(default_factory=list, max_length=10)
    featured: bool = False
    published: bool = False
    seo: BlogSeo = Field(default_factory=BlogSeo)

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value):
        return split_tags(value)


class BlogUpdate(Document):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    excerpt: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=100)
    image: Optional[str] = None
    author: Optional[BlogAuthor] = None
    category: Optional[BlogCategory] = None
    tags: Optional[List[str]] = Field(None, max_length=10)
    featured: Optional[bool] = None
    published: Optional[bool] = None
    status: Optional[BlogStatus] = None
    seo: Optional[BlogSeo] = None

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value):
        return split_tags(value)


# Request bodies

class AddToCartRequest(BaseModel):
    productId: Optional[str] = None
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    quantity: Optional[int] = None


class SyncCartItem(BaseModel):
    productId: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    flavour: Optional[str] = None
    price: Optional[float] = None
    image: Optional[str] = None
    quantity: Optional[int] = None


class SyncCartRequest(BaseModel):
    items: List[SyncCartItem]


class CreateOrderRequest(BaseModel):
    sessionId: Optional[str] = None
    shippingAddress: Optional[ShippingAddress] = None
    paymentMethod: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(None, max_length=1000)
    currency: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    orderStatus: Optional[OrderStatus] = None
    paymentStatus: Optional[PaymentStatus] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class AdminCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role: AdminRole = AdminRole.ADMIN


class AdminUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1)
    role: Optional[AdminRole] = None
    active: Optional[bool] = None

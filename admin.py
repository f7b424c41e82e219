"""
Admin accounts, access tokens and the dashboard

Tokens are compact signed strings, ``header.payload.signature``, with each
part base64url encoded and the signature an HMAC-SHA256 over the first two
parts. The payload carries the admin id (``sub``), role and an expiry.
A token only resolves to a caller while the admin still exists and is active.
"""
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Iterable, Optional, Union

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from pydantic import ValidationError
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import Settings, get_settings
from database import create_document, now, parse_object_id, to_str_id
from errors import InvalidInput, NotFound, Unauthorized
from schemas import Admin, AdminCreate, AdminUpdate, OrderStatus, PaymentStatus
from validation import first_error

logger = logging.getLogger(__name__)

COLLECTION = "admin"

password_hasher = PasswordHasher()


def public_admin(doc: dict) -> dict:
    """Admin document without its password hash"""
    d = to_str_id(doc)
    d.pop("password", None)
    return d


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), message, hashlib.sha256).digest()


def issue_token(admin: dict, secret: str, ttl: int) -> str:
    issued = int(time.time())
    header = {"alg": "HS256", "typ": "JWT"}
    payload = {
        "sub": str(admin["_id"]),
        "role": admin.get("role"),
        "iat": issued,
        "exp": issued + ttl,
    }
    header_b64 = _b64encode(json.dumps(header, separators=(",", ":")).encode())
    payload_b64 = _b64encode(json.dumps(payload, separators=(",", ":")).encode())
    signature = _sign(f"{header_b64}.{payload_b64}".encode(), secret)
    return f"{header_b64}.{payload_b64}.{_b64encode(signature)}"


def decode_token(token: str, secret: str) -> dict:
    """Verify signature and expiry, returning the payload

    Raises:
        Unauthorized: malformed, tampered or expired token
    """
    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
    except ValueError:
        raise Unauthorized("Unauthorized - Invalid token")

    expected = _sign(f"{header_b64}.{payload_b64}".encode(), secret)
    try:
        signature = _b64decode(signature_b64)
        payload = json.loads(_b64decode(payload_b64))
    except (ValueError, TypeError):
        raise Unauthorized("Unauthorized - Invalid token")
    if not hmac.compare_digest(signature, expected):
        raise Unauthorized("Unauthorized - Invalid token")

    exp = payload.get("exp")
    if not isinstance(exp, int) or exp < int(time.time()):
        raise Unauthorized("Unauthorized - Token expired")
    return payload


def has_role(admin: Optional[dict], roles: Iterable[str]) -> bool:
    if not admin:
        return False
    return admin.get("role") in set(roles)


class AdminService:
    def __init__(self, db: Database, settings: Optional[Settings] = None):
        self.db = db
        self.collection = db[COLLECTION]
        self.settings = settings or get_settings()

    def login(self, username: Optional[str], password: Optional[str]) -> dict:
        if not username or not password:
            raise InvalidInput("Username and password are required")

        admin = self.collection.find_one({"username": username})
        if not admin or not self._verify(admin, password):
            logger.warning("Failed login for %s", username)
            raise Unauthorized("Invalid credentials")
        if not admin.get("active", True):
            raise Unauthorized("Account is deactivated")

        stamp = now()
        changes = {"lastLogin": stamp}
        if password_hasher.check_needs_rehash(admin["password"]):
            changes["password"] = password_hasher.hash(password)
        self.collection.update_one({"_id": admin["_id"]}, {"$set": changes})
        admin["lastLogin"] = stamp

        logger.info("Admin %s logged in", username)
        return {
            "admin": public_admin(admin),
            "token": issue_token(admin, self.settings.ADMIN_TOKEN_SECRET, self.settings.ADMIN_TOKEN_TTL),
        }

    def _verify(self, admin: dict, password: str) -> bool:
        try:
            return password_hasher.verify(admin.get("password", ""), password)
        except (VerificationError, InvalidHashError):
            return False

    def resolve_caller(self, token: Optional[str]) -> Optional[dict]:
        """Admin behind a token, or None when the token is not usable"""
        if not token:
            return None
        try:
            payload = decode_token(token, self.settings.ADMIN_TOKEN_SECRET)
        except Unauthorized:
            return None
        oid = parse_object_id(payload.get("sub"))
        if oid is None:
            return None
        admin = self.collection.find_one({"_id": oid})
        if not admin or not admin.get("active", True):
            return None
        return admin

    # Account management

    def create_admin(self, data: Union[AdminCreate, dict]) -> dict:
        try:
            payload = data if isinstance(data, AdminCreate) else AdminCreate.model_validate(data)
        except ValidationError as e:
            raise InvalidInput(first_error(e))
        username = payload.username.strip()
        email = str(payload.email).lower()
        if self.collection.find_one({"$or": [{"username": username}, {"email": email}]}):
            raise InvalidInput("Admin already exists")

        doc = Admin(
            username=username,
            email=email,
            password=password_hasher.hash(payload.password),
            name=payload.name,
            role=payload.role,
        ).model_dump()
        doc["lastLogin"] = None
        try:
            doc = create_document(self.db, COLLECTION, doc)
        except DuplicateKeyError:
            raise InvalidInput("Admin already exists")
        logger.info("Admin %s created with role %s", username, doc["role"])
        return public_admin(doc)

    def list_admins(self) -> list:
        return [public_admin(d) for d in self.collection.find()]

    def update_admin(self, admin_id: str, data: Union[AdminUpdate, dict]) -> dict:
        try:
            payload = data if isinstance(data, AdminUpdate) else AdminUpdate.model_validate(data)
        except ValidationError as e:
            raise InvalidInput(first_error(e))
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            changes["email"] = str(changes["email"]).lower()
        changes["updatedAt"] = now()

        oid = parse_object_id(admin_id)
        doc = None
        if oid is not None:
            try:
                doc = self.collection.find_one_and_update(
                    {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
                )
            except DuplicateKeyError:
                raise InvalidInput("Email already in use")
        if not doc:
            raise NotFound("Admin not found")
        logger.info("Admin %s updated", admin_id)
        return public_admin(doc)

    def delete_admin(self, admin_id: str, caller: dict):
        if admin_id == str(caller["_id"]):
            raise InvalidInput("Cannot delete your own account")
        oid = parse_object_id(admin_id)
        if oid is None or self.collection.delete_one({"_id": oid}).deleted_count == 0:
            raise NotFound("Admin not found")
        logger.info("Admin %s deleted by %s", admin_id, caller.get("username"))

    def ensure_seed_admin(self, username: str, password: str, email: str):
        """Create a super-admin when no admin account exists yet"""
        if self.collection.count_documents({}) > 0:
            return None
        admin = self.create_admin({
            "username": username,
            "email": email,
            "password": password,
            "name": "Admin User",
            "role": "super-admin",
        })
        logger.info("Seeded super-admin %s", username)
        return admin

    # Dashboard

    def dashboard_stats(self) -> dict:
        orders = self.db["order"]
        revenue_rows = orders.find({"paymentStatus": {"$ne": PaymentStatus.FAILED.value}}, {"total": 1})
        revenue = round(sum(float(o.get("total", 0)) for o in revenue_rows), 2)
        recent = orders.find().sort("createdAt", DESCENDING).limit(5)
        return {
            "stats": {
                "products": self.db["product"].count_documents({}),
                "orders": orders.count_documents({}),
                "carts": self.db["cart"].count_documents({}),
                "blogs": self.db["blog"].count_documents({}),
                "revenue": revenue,
                "pendingOrders": orders.count_documents({"orderStatus": OrderStatus.PENDING.value}),
            },
            "recentOrders": [to_str_id(o) for o in recent],
        }

"""
Order pipeline

Turns a session cart into an immutable order. Line items and prices are
copied from the cart at creation time and the totals are computed once:

    subtotal     = sum(price * quantity)
    shippingCost = 0 when subtotal >= free shipping threshold, flat rate otherwise
    tax          = subtotal * tax rate
    total        = subtotal + shippingCost + tax

orderStatus moves forward under admin control; customers may only cancel
while the order is still pending or confirmed.
"""
import logging
import math
import random
import re
import time
from typing import Optional, Union

from pydantic import ValidationError
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from catalog import ProductCatalog
from config import Settings, get_settings
from database import create_document, now, parse_object_id, to_str_id
from errors import InvalidInput, InvalidState, NotFound, Unexpected
from schemas import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus, ShippingAddress
from validation import first_error, require_session_id

logger = logging.getLogger(__name__)

COLLECTION = "order"
CART_COLLECTION = "cart"

CANCELLABLE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value)


def generate_order_number(prefix: str = "GRN") -> str:
    """<prefix><last 8 digits of the ms timestamp><3 random digits>"""
    timestamp = str(int(time.time() * 1000))[-8:]
    return f"{prefix}{timestamp}{random.randint(0, 999):03d}"


def price_order(subtotal: float, settings: Optional[Settings] = None) -> dict:
    settings = settings or get_settings()
    shipping_cost = 0.0 if subtotal >= settings.FREE_SHIPPING_THRESHOLD else settings.FLAT_SHIPPING_COST
    tax = round(subtotal * settings.TAX_RATE, 2)
    return {
        "subtotal": round(subtotal, 2),
        "shippingCost": shipping_cost,
        "tax": tax,
        "total": round(subtotal + shipping_cost + tax, 2),
    }


class OrderService:
    def __init__(self, db: Database, catalog: Optional[ProductCatalog] = None,
                 settings: Optional[Settings] = None):
        self.collection = db[COLLECTION]
        self.carts = db[CART_COLLECTION]
        self.db = db
        self.catalog = catalog or ProductCatalog(db)
        self.settings = settings or get_settings()
        self.order_number_pattern = re.compile(rf"^{re.escape(self.settings.ORDER_NUMBER_PREFIX)}\d{{11}}$")

    def create(self, session_id: Optional[str], shipping_address: Union[ShippingAddress, dict, None],
               payment_method: Optional[str] = None, notes: Optional[str] = None,
               currency: Optional[str] = None) -> dict:
        session_id = require_session_id(session_id)
        if not shipping_address:
            raise InvalidInput("Shipping address is required")
        try:
            address = (shipping_address if isinstance(shipping_address, ShippingAddress)
                       else ShippingAddress.model_validate(shipping_address))
        except ValidationError as e:
            raise InvalidInput(f"Invalid shipping address: {first_error(e)}")
        try:
            method = PaymentMethod(payment_method) if payment_method else PaymentMethod.COD
        except ValueError:
            raise InvalidInput(f"Invalid payment method: {payment_method}")

        cart = self.carts.find_one({"sessionId": session_id})
        if not cart or not cart.get("items"):
            raise InvalidState("Cart is empty")

        # Every product must still exist; the cart's price stays authoritative
        items = []
        for item in cart["items"]:
            if not self.catalog.find_by_id(item["productId"]):
                raise NotFound(f"Product {item['name']} not found")
            items.append(OrderItem(
                productId=item["productId"],
                name=item["name"],
                flavour=item.get("flavour") or "",
                price=item["price"],
                quantity=item["quantity"],
                image=item.get("image") or "",
            ))

        subtotal = sum(i.price * i.quantity for i in items)
        order = self._insert(Order(
            orderNumber=generate_order_number(self.settings.ORDER_NUMBER_PREFIX),
            sessionId=session_id,
            items=items,
            shippingAddress=address,
            currency=currency or self.settings.CURRENCY,
            paymentMethod=method,
            notes=notes,
            **price_order(subtotal, self.settings),
        ))

        try:
            self.carts.update_one(
                {"_id": cart["_id"]},
                {"$set": {"items": [], "totalItems": 0, "subtotal": 0, "updatedAt": now()}},
            )
        except PyMongoError:
            logger.exception("Could not empty cart %s, rolling back order %s", session_id, order["orderNumber"])
            self.collection.delete_one({"_id": order["_id"]})
            raise Unexpected("Error creating order")

        logger.info("Order %s created for session %s, total %.2f %s",
                    order["orderNumber"], session_id, order["total"], order["currency"])
        return to_str_id(order)

    def _insert(self, order: Order) -> dict:
        """Insert, regenerating the order number once if it collides"""
        try:
            return create_document(self.db, COLLECTION, order)
        except DuplicateKeyError:
            logger.warning("Order number %s already taken, retrying", order.orderNumber)
        order = order.model_copy(update={"orderNumber": generate_order_number(self.settings.ORDER_NUMBER_PREFIX)})
        try:
            return create_document(self.db, COLLECTION, order)
        except DuplicateKeyError:
            raise Unexpected("Could not allocate a unique order number")

    def _find(self, order_id: str) -> Optional[dict]:
        oid = parse_object_id(order_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def get(self, id_or_order_number: str) -> dict:
        if id_or_order_number and self.order_number_pattern.match(id_or_order_number):
            doc = self.collection.find_one({"orderNumber": id_or_order_number})
        else:
            doc = self._find(id_or_order_number)
        if not doc:
            raise NotFound("Order not found")
        return to_str_id(doc)

    def list_by_session(self, session_id: str) -> list:
        session_id = require_session_id(session_id)
        cursor = self.collection.find({"sessionId": session_id}).sort("createdAt", DESCENDING)
        return [to_str_id(d) for d in cursor]

    def list_all(self, status: Optional[str] = None, page: int = 1, limit: int = 50) -> dict:
        page = max(1, int(page))
        limit = max(1, int(limit))
        query = {"orderStatus": status} if status else {}
        cursor = (self.collection.find(query)
                  .sort("createdAt", DESCENDING)
                  .skip((page - 1) * limit)
                  .limit(limit))
        total = self.collection.count_documents(query)
        return {
            "orders": [to_str_id(d) for d in cursor],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit),
            },
        }

    def update_status(self, order_id: str, order_status: Optional[str] = None,
                      payment_status: Optional[str] = None) -> dict:
        changes = {}
        try:
            if order_status:
                changes["orderStatus"] = OrderStatus(order_status).value
            if payment_status:
                changes["paymentStatus"] = PaymentStatus(payment_status).value
        except ValueError as e:
            raise InvalidInput(str(e))
        if not changes:
            raise InvalidInput("Nothing to update: provide orderStatus or paymentStatus")

        oid = parse_object_id(order_id)
        doc = None
        if oid is not None:
            changes["updatedAt"] = now()
            doc = self.collection.find_one_and_update(
                {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
        if not doc:
            raise NotFound("Order not found")
        logger.info("Order %s updated: %s", doc["orderNumber"],
                    {k: v for k, v in changes.items() if k != "updatedAt"})
        return to_str_id(doc)

    def cancel(self, order_id: str) -> dict:
        order = self._find(order_id)
        if not order:
            raise NotFound("Order not found")
        if order.get("orderStatus") not in CANCELLABLE_STATUSES:
            raise InvalidState("Order cannot be cancelled at this stage")

        stamp = now()
        # Guard on the status again so a concurrent shipment wins over the cancel
        res = self.collection.update_one(
            {"_id": order["_id"], "orderStatus": {"$in": list(CANCELLABLE_STATUSES)}},
            {"$set": {"orderStatus": OrderStatus.CANCELLED.value, "updatedAt": stamp}},
        )
        if res.modified_count == 0:
            raise InvalidState("Order cannot be cancelled at this stage")
        order.update(orderStatus=OrderStatus.CANCELLED.value, updatedAt=stamp)
        logger.info("Order %s cancelled", order["orderNumber"])
        return to_str_id(order)

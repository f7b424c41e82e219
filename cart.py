"""
Session cart

One cart per client session id, created lazily on first access. Line items
snapshot the product's name, flavour, selling price and first image at the
time they are added. totalItems and subtotal are derived fields: they are
recomputed from the line items before every write and never taken from the
client.
"""
import logging
from typing import Iterable, List, Optional, Tuple, Union

from pymongo.database import Database
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from catalog import ProductCatalog, effective_price, primary_image
from database import now, to_str_id
from errors import InvalidInput, NotFound
from schemas import Cart, CartItem, SyncCartItem
from validation import MAX_QUANTITY, clamp_quantity, first_error, is_valid_quantity, require_session_id

logger = logging.getLogger(__name__)

COLLECTION = "cart"


def compute_totals(items: Iterable[dict]) -> Tuple[int, float]:
    total_items = 0
    subtotal = 0.0
    for item in items:
        total_items += int(item["quantity"])
        subtotal += float(item["price"]) * int(item["quantity"])
    return total_items, round(subtotal, 2)


def snapshot_item(product: dict, quantity: int) -> dict:
    name = product.get("itemName") or ""
    return CartItem(
        productId=str(product["_id"]),
        name=name,
        flavour=product.get("flavour") or name,
        price=effective_price(product),
        image=primary_image(product),
        quantity=clamp_quantity(quantity),
    ).model_dump()


def _find_index(items: List[dict], product_id: str) -> int:
    for i, item in enumerate(items):
        if item["productId"] == product_id:
            return i
    return -1


class CartService:
    def __init__(self, db: Database, catalog: Optional[ProductCatalog] = None):
        self.collection = db[COLLECTION]
        self.catalog = catalog or ProductCatalog(db)

    # Persistence

    def _require_session(self, session_id: Optional[str]) -> str:
        return require_session_id(session_id)

    def _find(self, session_id: str) -> Optional[dict]:
        return self.collection.find_one({"sessionId": session_id})

    def _find_existing(self, session_id: str) -> dict:
        cart = self._find(session_id)
        if not cart:
            raise NotFound("Cart not found")
        return cart

    def _create(self, session_id: str) -> dict:
        stamp = now()
        doc = Cart(sessionId=session_id).model_dump()
        doc.update(createdAt=stamp, updatedAt=stamp)
        try:
            doc["_id"] = self.collection.insert_one(doc).inserted_id
        except DuplicateKeyError:
            # Another request created it first
            return self._find(session_id)
        logger.info("Created new cart for session %s", session_id)
        return doc

    def _save(self, cart: dict, items: List[dict]) -> dict:
        total_items, subtotal = compute_totals(items)
        changes = {
            "items": items,
            "totalItems": total_items,
            "subtotal": subtotal,
            "updatedAt": now(),
        }
        self.collection.update_one({"_id": cart["_id"]}, {"$set": changes})
        cart.update(changes)
        return cart

    # Operations

    def get_or_create(self, session_id: str) -> dict:
        session_id = self._require_session(session_id)
        cart = self._find(session_id) or self._create(session_id)
        return to_str_id(cart)

    def add_item(self, session_id: str, product_id: Optional[str], quantity: int = 1) -> dict:
        session_id = self._require_session(session_id)
        if not product_id:
            raise InvalidInput("Product ID is required")

        product = self.catalog.find_by_id(product_id)
        if not product:
            raise NotFound("Product not found")

        cart = self._find(session_id) or self._create(session_id)
        items = list(cart.get("items", []))
        product_id = str(product["_id"])
        idx = _find_index(items, product_id)
        if idx != -1:
            items[idx] = dict(items[idx])
            items[idx]["quantity"] = min(MAX_QUANTITY, items[idx]["quantity"] + clamp_quantity(quantity))
            logger.info("Updated quantity of %s in cart %s", product_id, session_id)
        else:
            items.append(snapshot_item(product, quantity))
            logger.info("Added %s to cart %s", product_id, session_id)

        return to_str_id(self._save(cart, items))

    def update_item(self, session_id: str, product_id: str, quantity) -> dict:
        session_id = self._require_session(session_id)
        if not is_valid_quantity(quantity):
            raise InvalidInput("Invalid quantity")

        cart = self._find_existing(session_id)
        items = list(cart.get("items", []))
        idx = _find_index(items, product_id)
        if idx == -1:
            raise NotFound("Item not found in cart")

        items[idx] = dict(items[idx], quantity=quantity)
        return to_str_id(self._save(cart, items))

    def remove_item(self, session_id: str, product_id: str) -> dict:
        session_id = self._require_session(session_id)
        cart = self._find_existing(session_id)
        items = [item for item in cart.get("items", []) if item["productId"] != product_id]
        return to_str_id(self._save(cart, items))

    def clear(self, session_id: str) -> dict:
        session_id = self._require_session(session_id)
        cart = self._find_existing(session_id)
        logger.info("Cleared cart %s", session_id)
        return to_str_id(self._save(cart, []))

    def sync(self, session_id: str, items: Optional[List[Union[SyncCartItem, dict]]]) -> dict:
        """Replace the cart contents with a client-side copy

        Items whose product no longer exists are dropped. The product's own
        fields win; the client's name/flavour/price/image only fill gaps.
        """
        session_id = self._require_session(session_id)
        if items is None or not isinstance(items, list):
            raise InvalidInput("Items must be an array")

        cart = self._find(session_id) or self._create(session_id)
        valid_items: List[dict] = []
        for raw in items:
            try:
                entry = raw if isinstance(raw, SyncCartItem) else SyncCartItem.model_validate(raw)
            except ValidationError as e:
                raise InvalidInput(first_error(e))
            product = self.catalog.find_by_id(entry.productId or entry.id)
            if not product:
                continue

            product_id = str(product["_id"])
            quantity = clamp_quantity(entry.quantity)
            idx = _find_index(valid_items, product_id)
            if idx != -1:
                valid_items[idx]["quantity"] = min(MAX_QUANTITY, valid_items[idx]["quantity"] + quantity)
                continue

            name = product.get("itemName") or entry.name or ""
            price = effective_price(product) if product.get("price") is not None else entry.price
            valid_items.append(CartItem(
                productId=product_id,
                name=name,
                flavour=product.get("flavour") or entry.flavour or name,
                price=price or 0,
                image=primary_image(product) or entry.image or "",
                quantity=quantity,
            ).model_dump())

        logger.info("Synced cart %s with %d items (%d sent)", session_id, len(valid_items), len(items))
        return to_str_id(self._save(cart, valid_items))

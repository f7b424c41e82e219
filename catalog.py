"""
Product catalog

Read-mostly store of purchasable items. Carts and orders only ever look a
product up by id through find_by_id and snapshot the fields they need.
"""
import logging
import re
from typing import List, Optional, Union

from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, get_documents, now, parse_object_id, to_str_id
from errors import InvalidInput, NotFound
from schemas import Product, ProductUpdate
from validation import first_error

logger = logging.getLogger(__name__)

COLLECTION = "product"


def effective_price(product: dict) -> float:
    """Selling price: the discount price when one is set, the regular price otherwise"""
    discount = product.get("discountPrice")
    if discount is not None:
        return float(discount)
    return float(product.get("price", 0))


def primary_image(product: dict) -> str:
    images = product.get("images") or []
    if images:
        return images[0]
    return product.get("image") or ""


class ProductCatalog:
    def __init__(self, db: Database):
        self.collection = db[COLLECTION]
        self.db = db

    def find_by_id(self, product_id) -> Optional[dict]:
        oid = parse_object_id(product_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def get(self, id_or_flavour: str) -> dict:
        """Look a product up by id, or by flavour with hyphens standing for spaces"""
        oid = parse_object_id(id_or_flavour)
        if oid is not None:
            doc = self.collection.find_one({"_id": oid})
        else:
            flavour = id_or_flavour.replace("-", " ").strip()
            doc = self.collection.find_one(
                {"flavour": {"$regex": f"^{re.escape(flavour)}$", "$options": "i"}}
            )
        if not doc:
            raise NotFound("Product not found")
        return to_str_id(doc)

    def list(self, category: Optional[str] = None, q: Optional[str] = None,
             active_only: bool = False) -> List[dict]:
        filt = {}
        if category:
            filt["category"] = category
        if q:
            filt["itemName"] = {"$regex": re.escape(q), "$options": "i"}
        if active_only:
            filt["isActive"] = True
        return [to_str_id(d) for d in get_documents(self.db, COLLECTION, filt)]

    def flavours(self) -> List[dict]:
        projection = {"itemName": 1, "flavour": 1, "price": 1, "discountPrice": 1, "images": 1, "image": 1}
        return [to_str_id(d) for d in self.collection.find({}, projection)]

    def create(self, data: Union[Product, dict]) -> dict:
        try:
            product = data if isinstance(data, Product) else Product.model_validate(data)
        except ValidationError as e:
            raise InvalidInput(first_error(e))
        doc = create_document(self.db, COLLECTION, product)
        logger.info("Product created: %s (%s)", doc["itemName"], doc["_id"])
        return to_str_id(doc)

    def update(self, product_id: str, data: Union[ProductUpdate, dict]) -> dict:
        try:
            update = data if isinstance(data, ProductUpdate) else ProductUpdate.model_validate(data)
        except ValidationError as e:
            raise InvalidInput(first_error(e))
        existing = self.find_by_id(product_id)
        if not existing:
            raise NotFound("Product not found")

        changes = update.model_dump(exclude_unset=True)
        price = changes.get("price", existing.get("price"))
        discount = changes.get("discountPrice", existing.get("discountPrice"))
        if discount is not None and price is not None and discount >= price:
            raise InvalidInput("Discount price must be less than regular price")

        changes["updatedAt"] = now()
        doc = self.collection.find_one_and_update(
            {"_id": existing["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        logger.info("Product updated: %s", product_id)
        return to_str_id(doc)

    def delete(self, product_id: str):
        oid = parse_object_id(product_id)
        res = self.collection.delete_one({"_id": oid}) if oid is not None else None
        if res is None or res.deleted_count == 0:
            raise NotFound("Product not found")
        logger.info("Product deleted: %s", product_id)

"""
Product catalog CRUD.
"""

import logging
from datetime import datetime
from typing import List

from pymongo import ReturnDocument

import database
import media
from database import ensure_object_id, to_serializable
from errors import NotFoundError
from schemas import Product, ProductUpdate

logger = logging.getLogger(__name__)


def list_products() -> List[dict]:
    docs = database.products().find({}).sort("created_at", -1)
    return [to_serializable(doc) for doc in docs]


def get_product(product_id: str) -> dict:
    doc = database.products().find_one({"_id": ensure_object_id(product_id)})
    if not doc:
        raise NotFoundError("Product not found")
    return to_serializable(doc)


def create_product(product: Product) -> dict:
    new_id = database.create_document(database.PRODUCT, product)
    return get_product(new_id)


def update_product(product_id: str, changes: ProductUpdate) -> dict:
    oid = ensure_object_id(product_id)
    updates = changes.model_dump(exclude_unset=True)
    previous = database.products().find_one_and_update(
        {"_id": oid},
        {"$set": updates | {"updated_at": datetime.now()}},
        return_document=ReturnDocument.BEFORE,
    )
    if previous is None:
        raise NotFoundError("Product not found")
    if "image" in updates and updates["image"] != previous.get("image"):
        _drop_hosted_image(previous.get("image"))
    return get_product(product_id)


def delete_product(product_id: str) -> bool:
    doc = database.products().find_one_and_delete({"_id": ensure_object_id(product_id)})
    if doc is None:
        return False
    _drop_hosted_image(doc.get("image"))
    return True


def _drop_hosted_image(url):
    public_id = media.public_id_from_url(url)
    if public_id:
        logger.info("Removing replaced product image %s", public_id)
        media.delete_image(public_id)

"""
MongoDB access layer.

`db` is the pymongo Database for DATABASE_URL/DATABASE_NAME, or None when the
environment does not configure one. Collection names follow the schema class
names in schemas.py, lowercased.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

from config import DATABASE_NAME, DATABASE_URL
from errors import InternalError, NotFoundError

logger = logging.getLogger(__name__)

PRODUCT = "product"
ORDER = "order"
ADMIN_USER = "adminuser"
AUTH_SESSION = "authsession"
COUPON = "coupon"
DAILY_PUZZLE = "dailypuzzle"

_client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


def collection(name: str):
    if db is None:
        raise InternalError("Database not configured")
    return db[name]


def products():
    return collection(PRODUCT)


def orders():
    return collection(ORDER)


def admin():
    return collection(ADMIN_USER)


def sessions():
    return collection(AUTH_SESSION)


def coupons():
    return collection(COUPON)


def puzzles():
    return collection(DAILY_PUZZLE)


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document with created_at/updated_at stamps and return its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = datetime.now()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    result = collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


def ensure_object_id(id_str: str) -> ObjectId:
    # A malformed id can never match a stored document.
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise NotFoundError("Not found")


def to_serializable(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


def ensure_indexes():
    """Create the indexes the services rely on for uniqueness and lookups."""
    if db is None:
        logger.warning("Database not configured, skipping index setup")
        return
    orders().create_index("order_number", unique=True)
    orders().create_index([("created_at", DESCENDING)])
    orders().create_index("phone_digits")
    coupons().create_index("code", unique=True)
    puzzles().create_index("date", unique=True)
    sessions().create_index("token", unique=True)
    sessions().create_index([("expires_at", ASCENDING)])

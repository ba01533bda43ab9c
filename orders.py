"""
Order lifecycle: creation with pricing and order numbers, status changes,
customer-facing lookups and dashboard statistics.
"""

import logging
import random
import re
from datetime import datetime, timedelta
from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import database
from config import DEFAULT_ORDER_PRICE
from database import ensure_object_id, to_serializable
from errors import InternalError, NotFoundError, ValidationError
from schemas import Order

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "confirmed", "preparing", "ready", "delivered", "cancelled")
DELIVERY_TYPES = ("delivery", "pickup")
REQUIRED_FIELDS = ("customer_name", "customer_email", "customer_phone", "delivery_date", "delivery_time")
TRACK_TYPES = ("orderNumber", "phone", "email")

ORDER_NUMBER_ATTEMPTS = 5
PHONE_DIGITS = 10


def validate_order_form(form: dict) -> None:
    missing = [f for f in REQUIRED_FIELDS if not str(form.get(f) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))
    delivery_type = form.get("delivery_type") or "pickup"
    if delivery_type not in DELIVERY_TYPES:
        raise ValidationError("Invalid delivery type")
    if delivery_type == "delivery" and not str(form.get("customer_address") or "").strip():
        raise ValidationError("Delivery address is required")


def compute_total(base_price: float, discount_percent: int = 0) -> float:
    """Base price minus the discount amount, rounded half-up to whole units."""
    discount = int(base_price * discount_percent / 100 + 0.5)
    return base_price - discount


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"NB{now:%y%m%d}{random.randint(0, 9999):04d}"


def phone_digits(phone: str) -> str:
    """Digits only, trimmed to the last ten (drops +91 / 0 prefixes)."""
    return re.sub(r"\D", "", phone or "")[-PHONE_DIGITS:]


def create_order(form: dict, product: Optional[dict] = None, discount_percent: int = 0) -> dict:
    """
    Persist a new pending order.

    `product` is the catalog document the customer picked, if any; its fields
    are copied onto the order so later catalog edits leave the order alone.
    Without a product the order is a general inquiry at DEFAULT_ORDER_PRICE.
    """
    validate_order_form(form)

    base_price = float(product["price"]) if product else float(DEFAULT_ORDER_PRICE)
    snapshot = {}
    if product:
        snapshot = {
            "product_id": str(product.get("id") or product.get("_id")),
            "product_name": product.get("name"),
            "product_image": product.get("image"),
            "product_price": base_price,
            "product_preparation_time": product.get("preparation_time"),
        }

    now = datetime.now()
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        order = Order(
            order_number=generate_order_number(now),
            customer_name=form["customer_name"].strip(),
            customer_email=form["customer_email"].strip(),
            customer_phone=form["customer_phone"].strip(),
            phone_digits=phone_digits(form["customer_phone"]),
            customer_address=form.get("customer_address"),
            delivery_date=form["delivery_date"],
            delivery_time=form["delivery_time"],
            delivery_type=form.get("delivery_type") or "pickup",
            cake_message=form.get("cake_message"),
            flavor=form.get("flavor"),
            weight=form.get("weight"),
            special_instructions=form.get("special_instructions"),
            coupon_code=form.get("coupon_code") if discount_percent else None,
            discount_percent=discount_percent,
            total_price=compute_total(base_price, discount_percent),
            **snapshot,
        )
        try:
            new_id = database.create_document(database.ORDER, order)
        except DuplicateKeyError:
            logger.warning("Order number %s already taken, retrying", order.order_number)
            continue
        logger.info("Order %s created (total %s)", order.order_number, order.total_price)
        return get_order(new_id)

    raise InternalError("Could not allocate an order number")


def list_orders(status: Optional[str] = None) -> List[dict]:
    query = {}
    if status:
        query["status"] = status
    docs = database.orders().find(query).sort("created_at", -1)
    return [to_serializable(o) for o in docs]


def get_order(order_id: str) -> dict:
    doc = database.orders().find_one({"_id": ensure_object_id(order_id)})
    if not doc:
        raise NotFoundError("Order not found")
    return to_serializable(doc)


def get_order_by_number(order_number: str) -> Optional[dict]:
    doc = database.orders().find_one({"order_number": order_number.strip().upper()})
    return to_serializable(doc)


def update_order_status(order_id: str, status: str) -> dict:
    if status not in ORDER_STATUSES:
        raise ValidationError("Invalid status")
    doc = database.orders().find_one_and_update(
        {"_id": ensure_object_id(order_id)},
        {"$set": {"status": status, "updated_at": datetime.now()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise NotFoundError("Order not found")
    logger.info("Order %s moved to %s", doc["order_number"], status)
    return to_serializable(doc)


def get_orders_by_phone(phone: str) -> List[dict]:
    """Orders whose phone has the same final ten digits. Shorter queries match nothing."""
    digits = phone_digits(phone)
    if len(digits) < PHONE_DIGITS:
        return []
    docs = database.orders().find({"phone_digits": digits}).sort("created_at", -1)
    return [to_serializable(o) for o in docs]


def get_orders_by_email(email: str) -> List[dict]:
    email = (email or "").strip()
    if not email:
        return []
    docs = database.orders().find(
        {"customer_email": {"$regex": f"^{re.escape(email)}$", "$options": "i"}}
    ).sort("created_at", -1)
    return [to_serializable(o) for o in docs]


def track_orders(search_type: str, value: str) -> List[dict]:
    if not search_type or not value or not value.strip():
        raise ValidationError("Missing search parameters")
    if search_type == "orderNumber":
        order = get_order_by_number(value)
        return [order] if order else []
    if search_type == "phone":
        return get_orders_by_phone(value)
    if search_type == "email":
        return get_orders_by_email(value)
    raise ValidationError("Invalid search type")


def get_order_stats(now: Optional[datetime] = None) -> dict:
    """
    Order counts and revenue for today, this week (Sunday start), this month
    and all time, plus a count per status. Cancelled orders count towards
    volume but not revenue.
    """
    now = now or datetime.now()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    windows = {
        "today": day_start,
        "this_week": day_start - timedelta(days=(day_start.weekday() + 1) % 7),
        "this_month": day_start.replace(day=1),
        "all_time": None,
    }
    stats = {name: {"orders": 0, "revenue": 0} for name in windows}
    stats["by_status"] = {status: 0 for status in ORDER_STATUSES}

    projection = {"created_at": 1, "total_price": 1, "status": 1}
    for order in database.orders().find({}, projection):
        status = order.get("status", "pending")
        stats["by_status"][status] = stats["by_status"].get(status, 0) + 1
        created = order.get("created_at")
        revenue = 0 if status == "cancelled" else order.get("total_price", 0)
        for name, start in windows.items():
            if start is None or (created is not None and created >= start):
                stats[name]["orders"] += 1
                stats[name]["revenue"] += revenue
    return stats

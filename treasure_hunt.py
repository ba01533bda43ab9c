"""
Treasure hunt: one arithmetic puzzle per day whose 3-digit answer unlocks a
single-use, same-day discount coupon. At most DAILY_COUPON_LIMIT coupons are
minted per day.
"""

import logging
import random
import secrets
import string
from datetime import date, datetime
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import database
from config import COUPON_DISCOUNT_PERCENT, DAILY_COUPON_LIMIT
from database import to_serializable
from errors import InternalError, ValidationError
from schemas import Coupon, DailyPuzzle

logger = logging.getLogger(__name__)

COUPON_PREFIX = "NB30-"
COUPON_CODE_LENGTH = 6
COUPON_CODE_ATTEMPTS = 5

PUZZLE_BANK = [
    ("I am the number of minutes in two hours, plus the number of hours in a day. What am I?", "144"),
    ("A baker makes 12 trays of 15 cookies and sells 48. How many cookies are left?", "132"),
    ("Multiply the number of days in a week by the number of months in a year, then add 100.", "184"),
    ("Take 999, subtract 333, then subtract 333 again. What remains?", "333"),
    ("A cake costs 250. How much do 3 cakes cost after a 150 discount on the total?", "600"),
    ("Square 12, then add the number of legs on 3 spiders.", "168"),
    ("I am 5 more than the product of 11 and 11. What am I?", "126"),
    ("A dozen dozen muffins, minus one dozen. How many muffins?", "132"),
    ("Add the degrees in a right angle to the degrees in a straight line.", "270"),
    ("Half of 500, plus a quarter of 100, plus 2.", "277"),
    ("The number of seconds in 5 minutes, plus the number of minutes in 1 hour.", "360"),
    ("Three consecutive numbers add up to 306. What is the largest?", "103"),
]

MSG_INCORRECT = "Incorrect passcode. Try again!"
MSG_SOLD_OUT = "All coupons for today have been claimed. Come back tomorrow!"
MSG_SUCCESS = "Congratulations! You unlocked a {pct}% discount coupon valid for today."


def today_key() -> str:
    return date.today().isoformat()


def pick_puzzle(day: str):
    """Same puzzle for the same day in every process."""
    return random.Random(day).choice(PUZZLE_BANK)


def get_daily_puzzle(day: Optional[str] = None) -> dict:
    day = day or today_key()
    puzzle, answer = pick_puzzle(day)
    new_doc = DailyPuzzle(date=day, puzzle=puzzle, answer=answer).model_dump(exclude={"date"})
    try:
        return database.puzzles().find_one_and_update(
            {"date": day},
            {"$setOnInsert": new_doc | {"created_at": datetime.now()}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        # Another request created today's puzzle first
        return database.puzzles().find_one({"date": day})


def get_coupons_remaining(day: Optional[str] = None) -> int:
    puzzle = get_daily_puzzle(day)
    return max(0, DAILY_COUPON_LIMIT - puzzle.get("coupons_generated", 0))


def generate_coupon_code() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return COUPON_PREFIX + "".join(secrets.choice(alphabet) for _ in range(COUPON_CODE_LENGTH))


def _claim_coupon_slot(day: str) -> bool:
    # Single conditional increment keeps the daily cap under concurrent winners.
    claimed = database.puzzles().find_one_and_update(
        {"date": day, "coupons_generated": {"$lt": DAILY_COUPON_LIMIT}},
        {"$inc": {"coupons_generated": 1}},
        return_document=ReturnDocument.AFTER,
    )
    return claimed is not None


def _mint_coupon(day: str) -> dict:
    for _ in range(COUPON_CODE_ATTEMPTS):
        coupon = Coupon(code=generate_coupon_code(), discount_percent=COUPON_DISCOUNT_PERCENT, valid_date=day)
        try:
            new_id = database.create_document(database.COUPON, coupon)
        except DuplicateKeyError:
            continue
        logger.info("Coupon %s minted for %s", coupon.code, day)
        return to_serializable(database.coupons().find_one({"_id": database.ensure_object_id(new_id)}))
    raise InternalError("Could not generate a coupon code")


def verify_puzzle_answer(answer: str, day: Optional[str] = None) -> dict:
    day = day or today_key()
    puzzle = get_daily_puzzle(day)

    if puzzle.get("coupons_generated", 0) >= DAILY_COUPON_LIMIT:
        return {"correct": False, "message": MSG_SOLD_OUT}
    if (answer or "").strip() != puzzle["answer"]:
        return {"correct": False, "message": MSG_INCORRECT}
    if not _claim_coupon_slot(day):
        logger.info("Correct answer for %s after the daily coupons ran out", day)
        return {"correct": False, "message": MSG_SOLD_OUT}

    coupon = _mint_coupon(day)
    return {
        "correct": True,
        "message": MSG_SUCCESS.format(pct=coupon["discount_percent"]),
        "coupon": coupon,
    }


def validate_coupon(code: str, day: Optional[str] = None) -> dict:
    """Check a code without consuming it."""
    day = day or today_key()
    coupon = database.coupons().find_one({"code": (code or "").strip().upper()})
    if coupon is None:
        return {"valid": False, "discount": 0, "message": "Invalid coupon code"}
    if coupon.get("valid_date") != day:
        return {"valid": False, "discount": 0, "message": "This coupon has expired"}
    if coupon.get("used_by"):
        return {"valid": False, "discount": 0, "message": "This coupon has already been used"}
    pct = coupon["discount_percent"]
    return {"valid": True, "discount": pct, "message": f"Coupon applied! {pct}% off"}


def redeem_coupon(code: str, customer: str, day: Optional[str] = None) -> int:
    """Mark the coupon used by `customer` and return its discount percent."""
    day = day or today_key()
    normalized = (code or "").strip().upper()
    coupon = database.coupons().find_one_and_update(
        {"code": normalized, "valid_date": day, "used_by": None},
        {"$set": {"used_by": customer, "used_at": datetime.now(), "updated_at": datetime.now()}},
        return_document=ReturnDocument.AFTER,
    )
    if coupon is None:
        check = validate_coupon(normalized, day)
        # Valid here means someone redeemed it between our update and this check.
        raise ValidationError("This coupon has already been used" if check["valid"] else check["message"])
    logger.info("Coupon %s redeemed by %s", normalized, customer)
    return coupon["discount_percent"]


def release_coupon(code: str, customer: str) -> bool:
    """Undo a redemption by `customer`, for an order that could not be stored."""
    result = database.coupons().update_one(
        {"code": (code or "").strip().upper(), "used_by": customer},
        {"$set": {"used_by": None, "used_at": None, "updated_at": datetime.now()}},
    )
    if result.modified_count:
        logger.warning("Coupon %s released after a failed order by %s", code, customer)
    return bool(result.modified_count)

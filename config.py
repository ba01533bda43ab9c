"""
Application configuration, read from the environment once at startup.
"""

import os

ENV = os.getenv("ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "admin_token")
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "1" if ENV == "production" else "0") == "1"

# First login claims the admin account when no admin exists yet.
ALLOW_ADMIN_BOOTSTRAP = os.getenv("ALLOW_ADMIN_BOOTSTRAP", "1") == "1"
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

DEFAULT_ORDER_PRICE = int(os.getenv("DEFAULT_ORDER_PRICE", "1000"))
DAILY_COUPON_LIMIT = int(os.getenv("DAILY_COUPON_LIMIT", "3"))
COUPON_DISCOUNT_PERCENT = int(os.getenv("COUPON_DISCOUNT_PERCENT", "30"))

STORE_NAME = os.getenv("STORE_NAME", "Nupur Bakery")
STORE_PHONE = os.getenv("STORE_PHONE", "+91 78797 97978")
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
MAIL_FROM = os.getenv("MAIL_FROM", "Nupur Bakery <mail@nupurbakery.in>")
ORDERS_MAIL_FROM = os.getenv("ORDERS_MAIL_FROM", "Nupur Bakery Orders <mail@nupurbakery.in>")
OWNER_EMAIL = os.getenv("OWNER_EMAIL", "mail@nupurbakery.in")

CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "nupurbakery/products")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "8000"))

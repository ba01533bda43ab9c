import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, Cookie, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
import catalog
import config
import database
import media
import notifications
import orders
import treasure_hunt
from errors import AuthError, InternalError, NotFoundError, StoreError, ValidationError
from schemas import Product, ProductUpdate

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.ensure_indexes()
    if database.db is not None and config.ADMIN_USERNAME and config.ADMIN_PASSWORD:
        auth.initialize_admin(config.ADMIN_USERNAME, config.ADMIN_PASSWORD)
    yield


app = FastAPI(title="Bakery Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------- Error envelope ----------------------------
def failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    if isinstance(exc, InternalError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return failure(exc.status_code, exc.message)


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return failure(500, "Internal server error")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return failure(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return failure(400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return failure(500, "Internal server error")


def require_admin(token: Optional[str] = Cookie(None, alias=config.SESSION_COOKIE_NAME)) -> str:
    if not auth.is_authenticated(token):
        raise AuthError("Unauthorized")
    return token


@app.get("/")
def read_root():
    return {"message": "Bakery Storefront API running"}


# ---------------------------- AUTH ----------------------------
class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


def set_session_cookie(response: Response, token: str, max_age: int):
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        token,
        max_age=max_age,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="strict",
        path="/",
    )


@app.post("/api/auth/login")
def login(payload: LoginRequest, response: Response):
    if not payload.username or not payload.password:
        raise ValidationError("Username and password are required")
    token = auth.login(payload.username, payload.password)
    if not token:
        raise AuthError("Invalid username or password")
    set_session_cookie(response, token, config.SESSION_TTL_HOURS * 60 * 60)
    return {"success": True, "data": {"token": token}}


@app.post("/api/auth/logout")
def logout(response: Response, token: Optional[str] = Cookie(None, alias=config.SESSION_COOKIE_NAME)):
    if token:
        auth.logout(token)
    set_session_cookie(response, "", 0)
    return {"success": True}


@app.get("/api/auth/check")
def check_auth(token: Optional[str] = Cookie(None, alias=config.SESSION_COOKIE_NAME)):
    return {"success": True, "data": {"authenticated": auth.is_authenticated(token)}}


@app.post("/api/auth/change-password")
def change_password(payload: ChangePasswordRequest, _: str = Depends(require_admin)):
    if not payload.new_password:
        raise ValidationError("New password is required")
    if not auth.change_password(payload.current_password, payload.new_password):
        raise AuthError("Current password is incorrect")
    return {"success": True}


# ---------------------------- PRODUCTS ----------------------------
@app.get("/api/products")
def list_products():
    return {"success": True, "data": catalog.list_products()}


@app.post("/api/products", status_code=201)
def create_product(product: Product, _: str = Depends(require_admin)):
    return {"success": True, "data": catalog.create_product(product)}


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    return {"success": True, "data": catalog.get_product(product_id)}


@app.put("/api/products/{product_id}")
def update_product(product_id: str, changes: ProductUpdate, _: str = Depends(require_admin)):
    return {"success": True, "data": catalog.update_product(product_id, changes)}


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, _: str = Depends(require_admin)):
    if not catalog.delete_product(product_id):
        raise NotFoundError("Product not found")
    return {"success": True}


# ---------------------------- ORDERS ----------------------------
class CreateOrderRequest(BaseModel):
    product_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    delivery_date: Optional[str] = None
    delivery_time: Optional[str] = None
    delivery_type: str = "pickup"
    cake_message: Optional[str] = None
    flavor: Optional[str] = None
    weight: Optional[str] = None
    special_instructions: Optional[str] = None
    coupon_code: Optional[str] = None


class UpdateStatusRequest(BaseModel):
    status: Optional[str] = None


@app.get("/api/orders")
def list_orders(status: Optional[str] = None, _: str = Depends(require_admin)):
    if status and status not in orders.ORDER_STATUSES:
        raise ValidationError("Invalid status")
    return {"success": True, "data": orders.list_orders(status)}


@app.post("/api/orders", status_code=201)
def place_order(payload: CreateOrderRequest, background_tasks: BackgroundTasks):
    form = payload.model_dump()
    orders.validate_order_form(form)

    product = None
    if payload.product_id:
        try:
            product = catalog.get_product(payload.product_id)
        except NotFoundError:
            logger.warning("Order for unknown product %s taken as a general order", payload.product_id)

    discount = 0
    customer = payload.customer_email.strip()
    if payload.coupon_code and payload.coupon_code.strip():
        form["coupon_code"] = payload.coupon_code.strip().upper()
        discount = treasure_hunt.redeem_coupon(form["coupon_code"], customer)

    try:
        order = orders.create_order(form, product, discount)
    except Exception:
        if discount:
            treasure_hunt.release_coupon(form["coupon_code"], customer)
        raise
    background_tasks.add_task(notifications.send_order_emails, order)
    return {"success": True, "data": order}


@app.get("/api/orders/stats")
def order_stats(_: str = Depends(require_admin)):
    return {"success": True, "data": orders.get_order_stats()}


@app.get("/api/orders/track")
def track_orders(type: Optional[str] = None, value: Optional[str] = None):
    return {"success": True, "data": orders.track_orders(type, value)}


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, _: str = Depends(require_admin)):
    return {"success": True, "data": orders.get_order(order_id)}


@app.patch("/api/orders/{order_id}")
def update_order_status(order_id: str, payload: UpdateStatusRequest, _: str = Depends(require_admin)):
    if not payload.status:
        raise ValidationError("Status is required")
    return {"success": True, "data": orders.update_order_status(order_id, payload.status)}


# ---------------------------- TREASURE HUNT & COUPONS ----------------------------
class VerifyRequest(BaseModel):
    answer: Optional[str] = None


class CouponRequest(BaseModel):
    code: Optional[str] = None


@app.get("/api/treasure-hunt/puzzle")
def daily_puzzle():
    puzzle = treasure_hunt.get_daily_puzzle()
    return {
        "success": True,
        "data": {
            "puzzle": puzzle["puzzle"],
            "coupons_remaining": treasure_hunt.get_coupons_remaining(),
        },
    }


@app.post("/api/treasure-hunt/verify")
def verify_answer(payload: VerifyRequest):
    if not payload.answer or len(payload.answer) != 3:
        raise ValidationError("Please enter a 3-digit passcode")
    return {"success": True, "data": treasure_hunt.verify_puzzle_answer(payload.answer)}


@app.post("/api/coupon/validate")
def validate_coupon(payload: CouponRequest):
    if not payload.code or not payload.code.strip():
        raise ValidationError("Coupon code is required")
    return {"success": True, "data": treasure_hunt.validate_coupon(payload.code)}


# ---------------------------- UPLOAD ----------------------------
class UploadRequest(BaseModel):
    image: Optional[str] = None


@app.post("/api/upload")
def upload(payload: UploadRequest, _: str = Depends(require_admin)):
    if not payload.image:
        raise ValidationError("No image provided")
    return {"success": True, "data": {"url": media.upload_image(payload.image)}}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)

import cloudinary.exceptions
import cloudinary.uploader
import pytest
import resend

import config
import media
from errors import InternalError
from notifications import render_order_confirmation, render_owner_notification, send_email, send_order_emails

ORDER = {
    "order_number": "NB2406190042",
    "customer_name": "Asha <Verma>",
    "customer_email": "asha@example.com",
    "customer_phone": "9876543210",
    "customer_address": "12 MG Road",
    "delivery_type": "delivery",
    "delivery_date": "2024-06-20",
    "delivery_time": "17:00",
    "cake_message": "Happy Birthday!",
    "product_name": "Black Forest",
    "product_price": 1000,
    "product_preparation_time": 90,
    "discount_percent": 30,
    "coupon_code": "NB30-ABC123",
    "total_price": 700,
    "created_at": "2024-06-19T10:00:00",
}


@pytest.fixture
def cloudinary_env(monkeypatch):
    monkeypatch.setattr(config, "CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setattr(config, "CLOUDINARY_API_KEY", "key123")
    monkeypatch.setattr(config, "CLOUDINARY_API_SECRET", "secret")


def test_public_id_from_url():
    url = "https://res.cloudinary.com/demo/image/upload/v17/nupurbakery/products/xyz789.webp"
    assert media.public_id_from_url(url) == "nupurbakery/products/xyz789"
    assert media.public_id_from_url("https://example.com/cake.png") is None
    assert media.public_id_from_url(None) is None


def test_upload_image(cloudinary_env, monkeypatch):
    seen = {}

    def upload(file, **options):
        seen["file"] = file
        seen["options"] = options
        return {"secure_url": "https://res.cloudinary.com/demo/x.jpg", "public_id": "nupurbakery/products/x"}

    monkeypatch.setattr(cloudinary.uploader, "upload", upload)
    assert media.upload_image("data:image/png;base64,AAAA") == "https://res.cloudinary.com/demo/x.jpg"
    assert seen["file"] == "data:image/png;base64,AAAA"
    assert seen["options"]["folder"] == "nupurbakery/products"
    assert {"width": 800, "height": 800, "crop": "limit"} in seen["options"]["transformation"]


def test_upload_failure_raises_internal_error(cloudinary_env, monkeypatch):
    def upload(file, **options):
        raise cloudinary.exceptions.Error("Invalid image file")

    monkeypatch.setattr(cloudinary.uploader, "upload", upload)
    with pytest.raises(InternalError, match="Failed to upload image"):
        media.upload_image("data:image/png;base64,AAAA")


def test_upload_unconfigured(monkeypatch):
    monkeypatch.setattr(config, "CLOUDINARY_CLOUD_NAME", None)
    with pytest.raises(InternalError):
        media.upload_image("data:image/png;base64,AAAA")


def test_delete_image(cloudinary_env, monkeypatch):
    destroyed = []
    monkeypatch.setattr(cloudinary.uploader, "destroy", lambda public_id: destroyed.append(public_id) or {"result": "ok"})
    assert media.delete_image("nupurbakery/products/x") is True
    assert destroyed == ["nupurbakery/products/x"]


def test_delete_image_swallows_errors(cloudinary_env, monkeypatch):
    def destroy(public_id):
        raise cloudinary.exceptions.Error("Server returned unexpected status code - 500")

    monkeypatch.setattr(cloudinary.uploader, "destroy", destroy)
    assert media.delete_image("nupurbakery/products/x") is False
    monkeypatch.setattr(cloudinary.uploader, "destroy", lambda public_id: {"result": "not found"})
    assert media.delete_image("nupurbakery/products/x") is False

def test_upload_endpoint(admin_client, monkeypatch):
    monkeypatch.setattr(media, "upload_image", lambda image: "https://cdn.example/cake.jpg")
    resp = admin_client.post("/api/upload", json={"image": "data:image/png;base64,AAAA"})
    assert resp.json() == {"success": True, "data": {"url": "https://cdn.example/cake.jpg"}}
    assert admin_client.post("/api/upload", json={}).status_code == 400


def test_upload_endpoint_requires_admin(client):
    assert client.post("/api/upload", json={"image": "x"}).status_code == 401


def test_upload_endpoint_hides_provider_failure(admin_client, monkeypatch):
    def failing(image):
        raise InternalError("Failed to upload image")

    monkeypatch.setattr(media, "upload_image", failing)
    resp = admin_client.post("/api/upload", json={"image": "x"})
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to upload image"}


# ---------------------------- Email ----------------------------

def test_confirmation_mail_escapes_customer_text():
    subject, html = render_order_confirmation(ORDER)
    assert subject == f"Order Confirmation #NB2406190042 - {config.STORE_NAME}"
    assert "Asha &lt;Verma&gt;" in html
    assert "Asha <Verma>" not in html
    assert "Thursday, 20 June 2024" in html
    assert "12 MG Road" in html
    assert "₹700" in html


def test_owner_mail_for_general_order():
    order = dict(ORDER, product_name=None, delivery_type="pickup")
    subject, html = render_owner_notification(order)
    assert subject.startswith("New Order #NB2406190042")
    assert "General Order" in html
    assert "Pickup" in html


def test_send_email_without_api_key(monkeypatch):
    monkeypatch.setattr(config, "RESEND_API_KEY", None)
    assert send_email("a@example.com", "Hi", "<p>x</p>") is False


def test_send_email_through_resend(monkeypatch):
    monkeypatch.setattr(config, "RESEND_API_KEY", "re_test")
    sent = []
    monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "email-1"})

    assert send_email("a@example.com", "Hi", "<p>x</p>", "Shop <shop@example.com>") is True
    assert resend.api_key == "re_test"
    assert sent == [{"from": "Shop <shop@example.com>", "to": ["a@example.com"], "subject": "Hi", "html": "<p>x</p>"}]


def test_send_email_provider_error_is_swallowed(monkeypatch):
    monkeypatch.setattr(config, "RESEND_API_KEY", "re_test")

    def send(params):
        raise ConnectionError("resend unreachable")

    monkeypatch.setattr(resend.Emails, "send", send)
    assert send_email("a@example.com", "Hi", "<p>x</p>") is False


def test_confirmation_mail_shows_preparation_time():
    _, html = render_order_confirmation(ORDER)
    assert "Preparation Time: 1 hour 30 minutes" in html
    _, html = render_order_confirmation(dict(ORDER, product_preparation_time=120))
    assert "Preparation Time: 2 hours" in html
    _, html = render_order_confirmation(dict(ORDER, product_name=None))
    assert "Preparation Time" not in html


def test_send_order_emails_never_raises(monkeypatch):
    import notifications

    def explode(*args, **kwargs):
        raise RuntimeError("template bug")

    monkeypatch.setattr(notifications, "render_order_confirmation", explode)
    assert send_order_emails(ORDER) == {"customer": False, "owner": False}


def test_send_order_emails_reports_each_mail(monkeypatch):
    import notifications

    sent = []
    monkeypatch.setattr(notifications, "send_email", lambda to, subject, html, sender=None: sent.append(to) or True)
    assert send_order_emails(ORDER) == {"customer": True, "owner": True}
    assert sent == ["asha@example.com", config.OWNER_EMAIL]

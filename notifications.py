"""
Transactional order emails sent through the Resend SDK.
Sending never raises: failures are logged and reported as False.
"""

import logging
from datetime import datetime
from html import escape
from typing import Optional, Tuple

import resend

import config

logger = logging.getLogger(__name__)


def _long_date(value) -> str:
    """'Saturday, 15 June 2024' for ISO dates/datetimes, else the value as-is."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return escape(str(value))
    return parsed.strftime("%A, %d %B %Y")


def _money(amount) -> str:
    if amount is None:
        return ""
    return f"₹{amount:,.0f}" if float(amount).is_integer() else f"₹{amount:,.2f}"


def _duration(minutes) -> str:
    """'45 minutes', '2 hours', '1 hour 30 minutes'."""
    if minutes is None:
        return ""
    minutes = int(minutes)
    if minutes < 60:
        return f"{minutes} minutes"
    hours, mins = divmod(minutes, 60)
    label = f"{hours} hour{'s' if hours > 1 else ''}"
    return f"{label} {mins} minutes" if mins else label


def _row(label: str, value) -> str:
    return (
        f'<tr><td style="padding: 8px 0; color: #666;">{label}</td>'
        f'<td style="padding: 8px 0; color: #333; text-align: right;">{value}</td></tr>'
    )


def render_order_confirmation(order: dict) -> Tuple[str, str]:
    """Subject and HTML body of the customer's confirmation mail."""
    is_delivery = order.get("delivery_type") == "delivery"
    product_html = ""
    if order.get("product_name"):
        image = ""
        if order.get("product_image"):
            image = f'<img src="{escape(order["product_image"])}" alt="" width="100" height="100">'
        product_html = (
            f"<h2>Product</h2>{image}"
            f"<p><strong>{escape(order['product_name'])}</strong> {_money(order.get('product_price'))}</p>"
        )
        if order.get("product_preparation_time") is not None:
            product_html += f"<p>Preparation Time: {_duration(order['product_preparation_time'])}</p>"

    custom_rows = ""
    for label, key in (("Cake Message", "cake_message"), ("Flavor", "flavor"),
                       ("Weight/Size", "weight"), ("Special Instructions", "special_instructions")):
        if order.get(key):
            custom_rows += _row(f"{label}:", escape(order[key]))
    custom_html = f"<h2>Customization</h2><table>{custom_rows}</table>" if custom_rows else ""

    delivery_rows = _row("Date:", _long_date(order.get("delivery_date")))
    delivery_rows += _row("Time:", escape(order.get("delivery_time") or ""))
    if is_delivery:
        delivery_rows += _row("Address:", escape(order.get("customer_address") or ""))

    discount_html = ""
    if order.get("discount_percent"):
        discount_html = f"<p>Coupon {escape(order.get('coupon_code') or '')} applied: {order['discount_percent']}% off</p>"

    html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Order Confirmation - {escape(config.STORE_NAME)}</title></head>
<body style="font-family: 'Segoe UI', Tahoma, sans-serif; background-color: #f5f5f5;">
  <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; padding: 30px;">
    <h1 style="color: #d04333;">{escape(config.STORE_NAME)}</h1>
    <p>Dear <strong>{escape(order.get("customer_name") or "")}</strong>,</p>
    <p>Thank you for your order! We're excited to create something special for you.</p>
    <table>
      {_row("Order Number:", escape(order["order_number"]))}
      {_row("Order Date:", _long_date(order.get("created_at")))}
    </table>
    {product_html}
    {custom_html}
    <h2>{"Delivery" if is_delivery else "Pickup"} Details</h2>
    <table>{delivery_rows}</table>
    {discount_html}
    <div style="background-color: #333; color: #fff; padding: 20px; text-align: center;">
      <p>Estimated Total</p>
      <p style="font-size: 28px; font-weight: bold;">{_money(order.get("total_price"))}</p>
      <p style="font-size: 12px;">*Final price may vary based on customization</p>
    </div>
    <p>We will contact you shortly to confirm your order. Questions? Call {escape(config.STORE_PHONE)}.</p>
  </div>
</body>
</html>"""
    subject = f"Order Confirmation #{order['order_number']} - {config.STORE_NAME}"
    return subject, html


def render_owner_notification(order: dict) -> Tuple[str, str]:
    """Subject and HTML body of the new-order mail to the shop owner."""
    if order.get("product_name"):
        product_html = (
            f"<ul><li><strong>Product:</strong> {escape(order['product_name'])}</li>"
            f"<li><strong>Base Price:</strong> {_money(order.get('product_price'))}</li></ul>"
        )
    else:
        product_html = "<p><strong>General Order (No specific product selected)</strong></p>"

    custom_items = "".join(
        f"<li><strong>{label}:</strong> {escape(order[key])}</li>"
        for label, key in (("Cake Message", "cake_message"), ("Flavor", "flavor"),
                           ("Weight/Size", "weight"), ("Special Instructions", "special_instructions"))
        if order.get(key)
    )

    html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>New Order - {escape(config.STORE_NAME)}</title></head>
<body style="font-family: Arial, sans-serif;">
  <h1 style="color: #d04333;">New Order Received!</h1>
  <h2>Order #{escape(order["order_number"])}</h2>
  <h3>Customer Details:</h3>
  <ul>
    <li><strong>Name:</strong> {escape(order.get("customer_name") or "")}</li>
    <li><strong>Email:</strong> {escape(order.get("customer_email") or "")}</li>
    <li><strong>Phone:</strong> {escape(order.get("customer_phone") or "")}</li>
    <li><strong>Address:</strong> {escape(order.get("customer_address") or "-")}</li>
  </ul>
  <h3>Product:</h3>
  {product_html}
  <h3>Customization:</h3>
  <ul>{custom_items}</ul>
  <h3>Delivery:</h3>
  <ul>
    <li><strong>Type:</strong> {"Delivery" if order.get("delivery_type") == "delivery" else "Pickup"}</li>
    <li><strong>Date:</strong> {_long_date(order.get("delivery_date"))}</li>
    <li><strong>Time:</strong> {escape(order.get("delivery_time") or "")}</li>
  </ul>
  <div style="background-color: #d04333; color: #fff; padding: 15px; text-align: center;">
    <strong>Estimated Total: {_money(order.get("total_price"))}</strong>
  </div>
</body>
</html>"""
    subject = f"New Order #{order['order_number']} - {order.get('customer_name')}"
    return subject, html


def send_email(to: str, subject: str, html: str, sender: Optional[str] = None) -> bool:
    if not config.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY is not configured, not sending '%s'", subject)
        return False
    resend.api_key = config.RESEND_API_KEY
    try:
        resend.Emails.send({"from": sender or config.MAIL_FROM, "to": [to], "subject": subject, "html": html})
        return True
    except Exception:
        # Provider and transport errors alike; mail is never allowed to fail an order.
        logger.exception("Failed to send email '%s' to %s", subject, to)
        return False


def send_order_emails(order: dict) -> dict:
    """Customer confirmation plus owner notification. Never raises."""
    results = {"customer": False, "owner": False}
    try:
        subject, html = render_order_confirmation(order)
        results["customer"] = send_email(order["customer_email"], subject, html, config.MAIL_FROM)
        subject, html = render_owner_notification(order)
        results["owner"] = send_email(config.OWNER_EMAIL, subject, html, config.ORDERS_MAIL_FROM)
    except Exception:
        logger.exception("Order emails failed for %s", order.get("order_number"))
    return results

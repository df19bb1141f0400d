from __future__ import annotations

import os

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from storefront.config import settings
from storefront.constants import ORDER_CONFIRMED
from storefront.errors import ValidationError
from storefront.models import Order
from storefront.utils.formatters import money


def generate_receipt_pdf(order: Order, username: str, export_dir: str = "") -> str:
    if order.status != ORDER_CONFIRMED:
        raise ValidationError(f"Order {order.id} is {order.status}, receipts exist for confirmed orders only")

    export_dir = export_dir or settings.export_dir
    os.makedirs(export_dir, exist_ok=True)

    filename = f"receipt_{order.id:06d}.pdf"
    path = os.path.join(export_dir, filename)

    c = canvas.Canvas(path, pagesize=A4)
    w, h = A4

    y = h - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(40, y, f"RECEIPT #{order.id:06d}")
    y -= 20

    c.setFont("Helvetica", 11)
    c.drawString(40, y, f"Customer: {username}")
    y -= 16
    c.drawString(40, y, f"Date: {order.created_at}")
    y -= 16
    c.drawString(40, y, f"Ship to: {order.address_id}")
    y -= 24

    # header
    c.setFont("Helvetica-Bold", 10)
    c.drawString(40, y, "Item")
    c.drawString(310, y, "Qty")
    c.drawString(360, y, "Price")
    c.drawString(440, y, "Total")
    y -= 10
    c.line(40, y, 550, y)
    y -= 16

    c.setFont("Helvetica", 10)
    for it in order.items:
        c.drawString(40, y, it.name[:45])
        c.drawRightString(340, y, str(it.qty))
        c.drawRightString(420, y, money(it.unit_cost, order.currency))
        c.drawRightString(550, y, money(it.unit_cost * it.qty, order.currency))
        y -= 14
        if y < 80:
            c.showPage()
            y = h - 50
            c.setFont("Helvetica", 10)

    y -= 10
    c.line(40, y, 550, y)
    y -= 18
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(550, y, f"TOTAL: {money(order.total, order.currency)}")

    c.save()
    return path

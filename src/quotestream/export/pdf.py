"""Quote PDF rendering with reportlab.

Layout: company header, quote facts, a service table that continues on new
pages with a repeated header row, the net/VAT/gross block and a validity
footer. Output is uncompressed so text markers can be found in the bytes.
"""

import re
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from ..config import PRICE_ON_REQUEST_LABEL, QUOTE_VALIDITY_DAYS
from ..quotes import QuoteItem, format_eur, gross_amount, vat_amount
from ..storage import SavedQuote

COMPANY_NAME = "Digitalwert"
COMPANY_TAGLINE = "Digitale Lösungen für Ihr Unternehmen"
ACCENT = colors.Color(191 / 255, 22 / 255, 172 / 255)

_MARGIN = 20 * mm
_ROW_HEIGHT = 8 * mm
_FOOTER_HEIGHT = 30 * mm
_SERVICE_X = _MARGIN
_DESCRIPTION_X = 90 * mm
_PRICE_RIGHT_X = A4[0] - _MARGIN

_FILENAME_UNSAFE = re.compile(r"[^a-zA-Z0-9äöüÄÖÜß\s]")


def quote_pdf_filename(quote: SavedQuote) -> str:
    """Download name: Angebot_<number>_<title without punctuation>.pdf

    >>> quote_pdf_filename(SavedQuote(quote_number="DW-123456", title="Neue Website!", total_amount=0))
    'Angebot_DW-123456_Neue_Website.pdf'
    """
    clean_title = re.sub(r"\s+", "_", _FILENAME_UNSAFE.sub("", quote.title))
    return f"Angebot_{quote.quote_number}_{clean_title}.pdf"


def _draw_truncated(c: canvas.Canvas, x: float, y: float, text: str, max_width: float) -> None:
    """Draw text cut with an ellipsis so it stays inside its column."""
    text = (text or "").strip()
    if not text or max_width <= 0:
        return
    if c.stringWidth(text) <= max_width:
        c.drawString(x, y, text)
        return
    while text and c.stringWidth(text + "...") > max_width:
        text = text[:-1]
    c.drawString(x, y, text.rstrip() + "...")


def _item_price_text(item: QuoteItem) -> str:
    return PRICE_ON_REQUEST_LABEL if item.price_on_request else format_eur(item.price)


def _draw_header(c: canvas.Canvas, quote: SavedQuote, page_h: float) -> float:
    y = page_h - _MARGIN
    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 24)
    c.drawString(_MARGIN, y, COMPANY_NAME)
    c.setFillColor(colors.black)
    c.setFont("Helvetica", 12)
    c.drawString(_MARGIN, y - 8 * mm, COMPANY_TAGLINE)

    y -= 25 * mm
    c.setFont("Helvetica-Bold", 18)
    c.drawString(_MARGIN, y, "Kostenvoranschlag")

    y -= 12 * mm
    right_x = 120 * mm
    c.setFont("Helvetica", 11)
    c.drawString(_MARGIN, y, "Angebot Nr.:")
    c.drawString(right_x, y, "Status:")
    c.setFont("Helvetica-Bold", 11)
    c.drawString(_MARGIN, y - 7 * mm, quote.quote_number)
    c.drawString(right_x, y - 7 * mm, quote.status.label)

    y -= 17 * mm
    c.setFont("Helvetica", 11)
    c.drawString(_MARGIN, y, "Titel:")
    c.drawString(right_x, y, "Erstellt am:")
    c.setFont("Helvetica-Bold", 11)
    _draw_truncated(c, _MARGIN + 20 * mm, y, quote.title, right_x - _MARGIN - 25 * mm)
    c.drawString(right_x + 25 * mm, y, quote.created_at.strftime("%d.%m.%Y"))

    y -= 15 * mm
    c.setFont("Helvetica-Bold", 14)
    c.drawString(_MARGIN, y, "Leistungsübersicht")
    return y - 10 * mm


def _draw_table_header(c: canvas.Canvas, y: float, page_w: float) -> float:
    c.setFillColor(colors.Color(0.94, 0.94, 0.94))
    c.rect(_MARGIN - 5 * mm, y - 3 * mm, page_w - 2 * _MARGIN + 10 * mm, _ROW_HEIGHT, stroke=0, fill=1)
    c.setFillColor(colors.black)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(_SERVICE_X, y, "Leistung")
    c.drawString(_DESCRIPTION_X, y, "Beschreibung")
    c.drawRightString(_PRICE_RIGHT_X, y, "Preis")
    return y - _ROW_HEIGHT


def _draw_item(c: canvas.Canvas, item: QuoteItem, y: float, shaded: bool, page_w: float) -> None:
    if shaded:
        c.setFillColor(colors.Color(0.97, 0.97, 0.97))
        c.rect(_MARGIN - 5 * mm, y - 3 * mm, page_w - 2 * _MARGIN + 10 * mm, _ROW_HEIGHT, stroke=0, fill=1)
        c.setFillColor(colors.black)
    c.setFont("Helvetica-Bold", 9)
    _draw_truncated(c, _SERVICE_X, y, item.service, _DESCRIPTION_X - _SERVICE_X - 4 * mm)
    c.setFont("Helvetica", 9)
    _draw_truncated(c, _DESCRIPTION_X, y, item.description, _PRICE_RIGHT_X - _DESCRIPTION_X - 30 * mm)
    c.setFont("Helvetica-Bold", 9)
    c.drawRightString(_PRICE_RIGHT_X, y, _item_price_text(item))


def _draw_totals(c: canvas.Canvas, net: int, y: float) -> float:
    label_x = 125 * mm
    value_x = 185 * mm
    c.setFont("Helvetica", 10)
    c.drawString(label_x, y, "Nettobetrag:")
    c.drawRightString(value_x, y, format_eur(net))
    c.drawString(label_x, y - 7 * mm, "MwSt. (19%):")
    c.drawRightString(value_x, y - 7 * mm, format_eur(vat_amount(net)))
    c.line(label_x, y - 11 * mm, value_x, y - 11 * mm)
    c.setFont("Helvetica-Bold", 12)
    c.drawString(label_x, y - 18 * mm, "Gesamtbetrag:")
    c.drawRightString(value_x, y - 18 * mm, format_eur(gross_amount(net)))
    return y - 28 * mm


def _draw_footer(c: canvas.Canvas, y: float) -> None:
    c.setFont("Helvetica", 9)
    c.setFillColor(colors.Color(0.4, 0.4, 0.4))
    c.drawString(_MARGIN, y, f"Gültigkeitsdauer: {QUOTE_VALIDITY_DAYS} Tage ab Erstellungsdatum")
    c.drawString(_MARGIN, y - 7 * mm, "Alle Preise verstehen sich als Projektpauschalen zzgl. 19% MwSt.")
    c.setFillColor(ACCENT)
    c.drawString(150 * mm, y, "www.digitalwert.de")
    c.setFillColor(colors.black)


def render_quote_pdf(quote: SavedQuote) -> bytes:
    """Render a saved quote as a PDF document.

    Args:
        quote: Quote with its items; totals are derived from the item prices

    Returns:
        PDF bytes
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setPageCompression(0)
    c.setTitle(f"Angebot {quote.quote_number}")
    page_w, page_h = A4

    y = _draw_table_header(c, _draw_header(c, quote, page_h), page_w)
    for index, item in enumerate(quote.items):
        if y < _MARGIN + _FOOTER_HEIGHT:
            c.showPage()
            y = _draw_table_header(c, page_h - _MARGIN, page_w)
        _draw_item(c, item, y, shaded=index % 2 == 0, page_w=page_w)
        y -= _ROW_HEIGHT

    net = sum(item.price for item in quote.items)
    if y - 30 * mm < _MARGIN + _FOOTER_HEIGHT:
        c.showPage()
        y = page_h - _MARGIN
    y = _draw_totals(c, net, y - 5 * mm)
    _draw_footer(c, min(y, _MARGIN + 15 * mm))

    c.showPage()
    c.save()
    return buf.getvalue()

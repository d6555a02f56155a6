"""Quote export formats."""

from .pdf import quote_pdf_filename, render_quote_pdf

__all__ = ["quote_pdf_filename", "render_quote_pdf"]

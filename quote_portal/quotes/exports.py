# quote_portal/quotes/exports.py
"""CSV and PDF renderers for stored quotes."""

import csv
import io
from datetime import date

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

CSV_HEADER = [
    'Contractor Name',
    'Company',
    'Roof Size (sq ft)',
    'Roof Type',
    'Project City',
    'Project State',
    'Project Date',
    'Submission Date',
]

PDF_TITLE = 'Roofing Project Quote'
PDF_FOOTER = 'This quote is valid for 30 days from the project date.'


def plain_number(value) -> str:
    """``2500.0`` -> ``2500``; other floats keep their digits."""
    if value is None:
        return ''
    number = float(value)
    return str(int(number)) if number.is_integer() else repr(number)


def _sq_ft(value) -> str:
    number = float(value)
    return f'{number:,.0f}' if number.is_integer() else f'{number:,.2f}'


def _day(value) -> str:
    return value.strftime('%Y-%m-%d') if value else ''


def csv_row(quote) -> list:
    return [
        quote.contractor_name,
        quote.company,
        plain_number(quote.roof_size),
        quote.roof_type,
        quote.project_city,
        quote.project_state,
        _day(quote.project_date),
        _day(quote.created_at),
    ]


def render_csv(quotes) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for q in quotes:
        writer.writerow(csv_row(q))
    return output.getvalue()


def csv_filename(today: date) -> str:
    return f'quotes-{today.isoformat()}.csv'


def pdf_filename(quote) -> str:
    return f'quote-{quote.id}.pdf'


def render_pdf(quote) -> bytes:
    """Single-page summary of one quote.

    Page streams are left uncompressed and the document is built in
    invariant mode, so the same quote always renders to the same bytes.
    """
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter, pageCompression=0, invariant=1)
    c.setTitle(f'{PDF_TITLE} {quote.id}')
    width, height = letter
    left = 72
    y = height - 72

    c.setFont('Helvetica-Bold', 20)
    c.drawCentredString(width / 2, y, PDF_TITLE)
    y -= 40

    sections = [
        ('Company Information', [
            f'Contractor: {quote.contractor_name}',
            f'Company: {quote.company}',
        ]),
        ('Project Details', [
            f'Roof Size: {_sq_ft(quote.roof_size)} sq ft',
            f'Roof Type: {quote.roof_type}',
            f'Location: {quote.location}',
            f'Project Date: {_day(quote.project_date)}',
        ]),
        ('Reference', [
            f'Quote ID: {quote.id}',
            f'Submitted: {_day(quote.created_at)}',
        ]),
    ]
    for heading, lines in sections:
        c.setFont('Helvetica-Bold', 14)
        c.drawString(left, y, heading)
        y -= 20
        c.setFont('Helvetica', 12)
        for ln in lines:
            c.drawString(left, y, ln)
            y -= 16
        y -= 14

    c.setFont('Helvetica', 10)
    c.drawCentredString(width / 2, 54, PDF_FOOTER)
    c.showPage()
    c.save()
    return buf.getvalue()

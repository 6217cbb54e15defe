"""
Receipt PDF rendering for ledger entries
"""

import io
from datetime import datetime
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from config import Config


def _format_date(value):
    if not value:
        return '-'
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime('%d-%b-%Y')


def build_receipt_pdf(student: dict, entry: dict, institution_name: str = None) -> bytes:
    """Render an A4 payment receipt; takes the to_dict() forms of student and entry"""
    institution_name = institution_name or Config.INSTITUTION_NAME

    buffer = io.BytesIO()
    p = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    # Header
    p.setFont("Helvetica-Bold", 20)
    p.drawCentredString(width/2, height - 50, institution_name)
    p.setFont("Helvetica", 12)
    p.drawCentredString(width/2, height - 70, "Payment Receipt")

    # Receipt details
    y = height - 120
    p.setFont("Helvetica-Bold", 12)
    p.drawString(50, y, f"Receipt No: {entry['receipt_number']}")
    p.drawRightString(width - 50, y, f"Date: {_format_date(entry.get('paid_date'))}")

    y -= 30
    p.setFont("Helvetica", 11)
    p.drawString(50, y, f"Student Name: {student['name']}")
    y -= 20
    p.drawString(50, y, f"PRN: {student['prn']}")
    p.drawString(300, y, f"Department: {student.get('department') or 'N/A'}")

    # Payment details
    y -= 40
    p.setFont("Helvetica-Bold", 11)
    p.drawString(50, y, "Payment Details:")
    y -= 25
    p.setFont("Helvetica", 11)

    details = [
        ("Amount:", f"{entry['amount']:,.2f}"),
        ("Type:", (entry.get('type') or 'fine').title()),
        ("Category:", entry.get('category') or 'Others'),
        ("Charge Date:", _format_date(entry.get('date'))),
        ("Status:", 'Paid' if entry.get('is_paid') else 'Unpaid'),
    ]
    if entry.get('reason'):
        details.append(("Reason:", entry['reason']))

    for label, value in details:
        p.drawString(70, y, label)
        p.drawString(250, y, str(value))
        y -= 20

    p.drawCentredString(width/2, 50, "This is a computer-generated receipt")

    p.showPage()
    p.save()

    return buffer.getvalue()

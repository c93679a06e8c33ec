"""Printable order document (PDF)."""
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from app.models import Order
from app.services import lookup_service, settlement
from app.services.payment_service import remaining_balance, total_paid
from app.services.pricing_service import compute_order_totals
from app.utils.formatters import date_tr, money_tr, percent_tr


def _order_number(session, order: Order) -> str:
    prefix = lookup_service.get_lookup_value(session, 'SYSTEM_SETTINGS', 'ORDER_NUMBER_PREFIX', 'ORD')
    return f"{prefix}-{order.id:06d}"


def render_order_pdf(session, order: Order) -> BytesIO:
    """
    Render an order with its items, cost breakdown and payment status.

    Totals are recomputed with the same rules used when the order was saved,
    so the document always agrees with total_price.
    """
    company = lookup_service.get_company_info(session)
    currency = lookup_service.get_currency_symbol(session)
    totals = compute_order_totals(order)
    paid = total_paid(order, session)

    def money(value):
        return money_tr(value, currency)

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=f"Order {order.id}"
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'OrderTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    header_style = ParagraphStyle(
        'OrderHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Company header
    elements.append(Paragraph("ORDER", title_style))
    if company.get('name'):
        elements.append(Paragraph(f"<b>{escape(company['name'])}</b>", header_style))
    if company.get('address'):
        elements.append(Paragraph(escape(company['address']), header_style))
    contact_parts = []
    if company.get('phone'):
        contact_parts.append(f"Tel: {escape(company['phone'])}")
    if company.get('email'):
        contact_parts.append(f"Email: {escape(company['email'])}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), header_style))
    elements.append(Spacer(1, 0.3*inch))

    # 2. Order metadata
    info_data = [
        ['Order No:', _order_number(session, order)],
        ['Date:', date_tr(order.created_at)],
        ['Status:', settlement.LABELS[order.status]],
    ]
    if order.customer is not None:
        info_data.append(['Customer:', order.customer.name])
        if order.customer.phone:
            info_data.append(['Phone:', order.customer.phone])
    if order.address:
        info_data.append(['Address:', Paragraph(escape(order.address), styles['Normal'])])

    info_table = Table(info_data, colWidths=[1.6*inch, 4.4*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Items
    table_data = [['Item', 'Quantity', 'Unit Price', 'Total']]
    for item in order.active_items:
        table_data.append([
            Paragraph(escape(item.display_name or '-'), styles['Normal']),
            str(item.quantity),
            money(item.price),
            money(item.line_total)
        ])

    items_table = Table(table_data, colWidths=[3.2*inch, 0.9*inch, 1.3*inch, 1.3*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (3, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Cost breakdown
    summary_data = [
        ['Items total:', money(totals.items_total)],
        [f'VAT ({percent_tr(order.tax_rate)}):', money(totals.tax_amount)],
    ]
    if order.labor_cost:
        summary_data.append(['Labor:', money(order.labor_cost)])
    if order.delivery_fee:
        summary_data.append(['Delivery:', money(order.delivery_fee)])
    summary_data.append(['Subtotal:', money(totals.subtotal)])
    if totals.discount_amount:
        summary_data.append(['Discount:', f"-{money(totals.discount_amount)}"])
    summary_data.append(['TOTAL:', money(totals.grand_total)])
    summary_data.append(['Paid:', money(paid)])
    summary_data.append(['Remaining:', money(remaining_balance(order, session))])

    total_row = len(summary_data) - 3
    summary_table = Table(summary_data, colWidths=[5.4*inch, 1.3*inch])
    summary_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('FONTNAME', (0, total_row), (-1, total_row), 'Helvetica-Bold'),
        ('FONTSIZE', (0, total_row), (-1, total_row), 13),
        ('TEXTCOLOR', (0, total_row), (-1, total_row), colors.HexColor('#27AE60')),
        ('LINEABOVE', (0, total_row), (-1, total_row), 1.5, colors.HexColor('#27AE60')),
    ]))
    elements.append(summary_table)
    elements.append(Spacer(1, 0.4*inch))

    if order.description:
        note_style = ParagraphStyle('Notes', parent=styles['Normal'], fontSize=9, textColor=colors.HexColor('#34495E'))
        elements.append(Paragraph(f"<b>Notes:</b> {escape(order.description)}", note_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def order_pdf_filename(order: Order) -> str:
    return f"order-{order.id}.pdf"

"""
Delivery challan PDF rendering with reportlab.

The challan number is printed as a Code128 barcode so a challan can be
scanned at the gate or at the customer's end.
"""
import io
import logging
from decimal import Decimal
from xml.sax.saxutils import escape

import barcode
from barcode.writer import ImageWriter
from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def render_barcode(value):
    """Code128 barcode of ``value`` as PNG bytes"""
    code128 = barcode.get_barcode_class('code128')
    barcode_instance = code128(value, writer=ImageWriter())
    barcode_img = barcode_instance.render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 12.0,
        'quiet_zone': 2.0,
        'font_size': 0,
        'text_distance': 0,
        'background': 'white',
        'foreground': 'black',
    })
    buffer = io.BytesIO()
    barcode_img.save(buffer, format='PNG')
    return buffer.getvalue()


def _styles():
    styles = getSampleStyleSheet()
    return {
        'company': ParagraphStyle('Company', parent=styles['Heading1'], fontSize=16, alignment=1, spaceAfter=2),
        'centered': ParagraphStyle('Centered', parent=styles['Normal'], fontSize=9, alignment=1),
        'title': ParagraphStyle('Title', parent=styles['Heading2'], fontSize=13, alignment=1, spaceBefore=6),
        'normal': ParagraphStyle('Small', parent=styles['Normal'], fontSize=9, leading=12),
        'label': ParagraphStyle('Label', parent=styles['Normal'], fontSize=9, leading=12, fontName='Helvetica-Bold'),
    }


def _fmt(value):
    value = value if value is not None else ZERO
    return f"{value:.3f}".rstrip('0').rstrip('.') or '0'


def _company_header(styles):
    company = getattr(settings, 'COMPANY_INFO', {}) or {}
    story = [Paragraph(escape(company.get('name') or 'Delivery Challan'), styles['company'])]
    address = ', '.join(part for part in (company.get('address'), company.get('city')) if part)
    if address:
        story.append(Paragraph(escape(address), styles['centered']))
    contact = ' | '.join(
        part for part in (
            f"Phone: {company['phone']}" if company.get('phone') else '',
            f"Email: {company['email']}" if company.get('email') else '',
            f"GSTIN: {company['gstin']}" if company.get('gstin') else '',
        ) if part
    )
    if contact:
        story.append(Paragraph(escape(contact), styles['centered']))
    return story


def _details_table(rows, styles):
    table = Table(
        [[Paragraph(label, styles['label']), Paragraph(escape(str(value or '-')), styles['normal'])] for label, value in rows],
        colWidths=[40 * mm, 130 * mm],
    )
    table.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
        ('TOPPADDING', (0, 0), (-1, -1), 2),
    ]))
    return table


def _items_table(rows, styles):
    """``rows`` are (product_name, product_code, ordered, dispatched, unit, weight) tuples"""
    data = [['#', 'Product', 'Code', 'Ordered', 'Dispatched', 'Unit', 'Weight (kg)']]
    total_quantity = ZERO
    total_weight = ZERO
    for index, (name, code, ordered, dispatched, unit, weight) in enumerate(rows, start=1):
        data.append([
            index, Paragraph(escape(name or ''), styles['normal']), code or '-',
            _fmt(ordered), _fmt(dispatched), unit, _fmt(weight),
        ])
        total_quantity += dispatched or ZERO
        total_weight += weight or ZERO
    data.append(['', 'Total', '', '', _fmt(total_quantity), '', _fmt(total_weight)])

    table = Table(data, colWidths=[10 * mm, 60 * mm, 22 * mm, 20 * mm, 22 * mm, 16 * mm, 22 * mm], repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (3, 1), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
        ('BACKGROUND', (0, -1), (-1, -1), colors.lightgrey),
    ]))
    return table


def _signature_block(styles):
    table = Table(
        [['', ''], [Paragraph("Receiver's Signature", styles['centered']), Paragraph('Authorised Signatory', styles['centered'])]],
        colWidths=[85 * mm, 85 * mm],
        rowHeights=[18 * mm, None],
    )
    table.setStyle(TableStyle([
        ('LINEABOVE', (0, 1), (0, 1), 0.5, colors.black),
        ('LINEABOVE', (1, 1), (1, 1), 0.5, colors.black),
        ('LEFTPADDING', (0, 0), (-1, -1), 10),
        ('RIGHTPADDING', (0, 0), (-1, -1), 10),
    ]))
    return table


def _build(story):
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4, leftMargin=20 * mm, rightMargin=20 * mm, topMargin=15 * mm, bottomMargin=15 * mm
    )
    doc.build(story)
    return buffer.getvalue()


def render_challan_pdf(challan):
    """PDF bytes of a single delivery challan"""
    styles = _styles()
    sales_order = challan.sales_order
    story = _company_header(styles)
    story.append(Paragraph('DELIVERY CHALLAN', styles['title']))
    story.append(Spacer(1, 4))
    story.append(Image(io.BytesIO(render_barcode(challan.challan_number)), width=70 * mm, height=14 * mm))
    story.append(Paragraph(challan.challan_number, styles['centered']))
    story.append(Spacer(1, 8))

    story.append(_details_table([
        ('Challan No.', challan.challan_number),
        ('Challan Date', challan.challan_date.strftime('%d-%m-%Y') if challan.challan_date else ''),
        ('Sales Order', challan.so_number or sales_order.so_number),
        ('Status', challan.get_status_display()),
        ('Warehouse', challan.warehouse.name if challan.warehouse_id else ''),
        ('Transport', challan.transport_name),
        ('Vehicle No.', challan.vehicle_number),
        ('Driver', ' '.join(part for part in (challan.driver_name, challan.driver_phone) if part)),
        ('LR No.', challan.lr_number),
    ], styles))
    story.append(Spacer(1, 8))

    story.append(Paragraph('Delivery To', styles['label']))
    story.append(_details_table([
        ('Customer', challan.customer_name or sales_order.customer.company_name),
        ('Address', ', '.join(part for part in (challan.delivery_address, challan.delivery_city) if part)),
        ('Contact', ' '.join(part for part in (challan.contact_person, challan.contact_phone) if part)),
    ], styles))
    story.append(Spacer(1, 8))

    story.append(_items_table([
        (item.product_name, item.product_code, item.ordered_quantity, item.dispatch_quantity, item.unit, item.weight)
        for item in challan.items.all()
    ], styles))

    if challan.notes:
        story.append(Spacer(1, 8))
        story.append(Paragraph(f"<b>Notes:</b> {escape(challan.notes)}", styles['normal']))

    story.append(Spacer(1, 20))
    story.append(_signature_block(styles))
    logger.info(f"Rendered challan PDF {challan.challan_number}")
    return _build(story)


def render_consolidated_pdf(sales_order, challans):
    """One PDF covering all challans of a sales order, items summed per order line"""
    styles = _styles()
    challans = list(challans)
    story = _company_header(styles)
    story.append(Paragraph('CONSOLIDATED DELIVERY CHALLAN', styles['title']))
    story.append(Spacer(1, 4))
    story.append(Image(io.BytesIO(render_barcode(sales_order.so_number)), width=70 * mm, height=14 * mm))
    story.append(Paragraph(sales_order.so_number, styles['centered']))
    story.append(Spacer(1, 8))

    story.append(_details_table([
        ('Sales Order', sales_order.so_number),
        ('Order Date', sales_order.order_date.strftime('%d-%m-%Y') if sales_order.order_date else ''),
        ('Customer', sales_order.customer.company_name),
        ('Challans', ', '.join(challan.challan_number for challan in challans)),
        ('Generated On', timezone.localtime().strftime('%d-%m-%Y %H:%M')),
    ], styles))
    story.append(Spacer(1, 8))

    totals = {}
    for challan in challans:
        for item in challan.items.all():
            row = totals.setdefault(item.sales_order_item_id, {
                'name': item.product_name, 'code': item.product_code, 'ordered': item.ordered_quantity,
                'dispatched': ZERO, 'unit': item.unit, 'weight': ZERO,
            })
            row['dispatched'] += item.dispatch_quantity
            row['weight'] += item.weight

    story.append(_items_table([
        (row['name'], row['code'], row['ordered'], row['dispatched'], row['unit'], row['weight'])
        for row in totals.values()
    ], styles))
    story.append(Spacer(1, 20))
    story.append(_signature_block(styles))
    logger.info(f"Rendered consolidated challan PDF for {sales_order.so_number} ({len(challans)} challans)")
    return _build(story)

from django.db import models
from django.utils import timezone
from decimal import Decimal

from textile_erp.core.models import User
from textile_erp.core.numbering import document_prefix, next_counted_code, next_sequential_code
from textile_erp.catalog.models import Category, Product
from textile_erp.parties.models import Supplier
from textile_erp.locations.models import Warehouse

ZERO = Decimal('0')

QUANTITY_FIELD_KWARGS = {'max_digits': 12, 'decimal_places': 3, 'default': ZERO}


class PurchaseOrder(models.Model):
    """Purchase order raised on a supplier"""
    STATUS_CHOICES = [
        ('Draft', 'Draft'),
        ('Sent', 'Sent'),
        ('Acknowledged', 'Acknowledged'),
        ('Approved', 'Approved'),
        ('Partially_Received', 'Partially Received'),
        ('Fully_Received', 'Fully Received'),
        ('Cancelled', 'Cancelled'),
        ('Closed', 'Closed'),
    ]
    APPROVAL_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Approved', 'Approved'),
        ('Rejected', 'Rejected'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Partial', 'Partial'),
        ('Paid', 'Paid'),
    ]

    # Statuses in which only status/notes/approval fields may be edited
    RESTRICTED_EDIT_STATUSES = ('Sent', 'Acknowledged', 'Approved')
    LOCKED_STATUSES = ('Fully_Received', 'Cancelled', 'Closed')
    CLOSED_STATUSES = ('Fully_Received', 'Cancelled', 'Closed')

    po_number = models.CharField(max_length=50, unique=True, blank=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='purchase_orders')
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='purchase_orders', null=True, blank=True)
    order_date = models.DateField(default=timezone.localdate)
    expected_delivery_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='Draft')
    approval_status = models.CharField(max_length=20, choices=APPROVAL_STATUS_CHOICES, default='Pending')
    approved_by = models.CharField(max_length=150, blank=True)
    approved_date = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='Pending')
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    notes = models.TextField(blank=True)
    internal_notes = models.TextField(blank=True)
    sent_date = models.DateTimeField(null=True, blank=True)
    acknowledged_date = models.DateTimeField(null=True, blank=True)
    total_grns = models.PositiveIntegerField(default=0)
    completion_percentage = models.PositiveSmallIntegerField(default=0)
    cancellation_reason = models.TextField(blank=True)
    cancelled_by = models.CharField(max_length=150, blank=True)
    cancelled_date = models.DateTimeField(null=True, blank=True)
    revision_number = models.PositiveIntegerField(default=1)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_orders')
    last_modified_by = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.po_number or f"PO-{self.id}"

    def save(self, *args, **kwargs):
        if not self.po_number:
            self.po_number = next_sequential_code(
                PurchaseOrder.objects.all(), 'po_number', f'{document_prefix()}/PO/', width=1
            )
        super().save(*args, **kwargs)

    @property
    def is_overdue(self):
        if not self.expected_delivery_date or self.status in self.CLOSED_STATUSES:
            return False
        return self.expected_delivery_date < timezone.localdate()

    def get_total_quantity(self):
        return sum((item.quantity for item in self.items.all()), ZERO)

    def get_total_received_quantity(self):
        return sum((item.received_quantity for item in self.items.all()), ZERO)

    def get_total_weight(self):
        return sum((item.weight for item in self.items.all()), ZERO)

    def refresh_total_amount(self):
        self.total_amount = sum((item.total_price for item in self.items.all()), ZERO)

    def update_receipt_status(self):
        """
        Recompute per-item receipt state and roll it up into the order.

        Manually completed items count as fully received. The order moves to
        Fully_Received when every item is Complete and to Partially_Received as
        soon as any item has been received.
        """
        items = list(self.items.all())
        total_ordered = ZERO
        total_received = ZERO

        for item in items:
            item.refresh_receipt_status()
            item.save()
            total_ordered += item.quantity
            total_received += item.received_quantity

        if total_ordered > 0:
            self.completion_percentage = min(100, int(round(total_received / total_ordered * 100)))
        else:
            self.completion_percentage = 0

        if items and all(item.receipt_status == 'Complete' for item in items):
            self.status = 'Fully_Received'
            self.completion_percentage = 100
        elif any(item.receipt_status in ('Partial', 'Complete') for item in items):
            self.status = 'Partially_Received'

        self.save()

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_po_status'),
            models.Index(fields=['supplier', 'status'], name='idx_po_supplier_status'),
            models.Index(fields=['-order_date', '-created_at'], name='idx_po_date_created'),
        ]


class PurchaseOrderItem(models.Model):
    """Purchase order line items"""
    RECEIPT_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Partial', 'Partial'),
        ('Complete', 'Complete'),
    ]

    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='purchase_order_items')
    product_name = models.CharField(max_length=200)
    product_code = models.CharField(max_length=20, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    weight = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    unit = models.CharField(max_length=20, default='Bags')
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    received_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    received_weight = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    pending_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    pending_weight = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    receipt_status = models.CharField(max_length=20, choices=RECEIPT_STATUS_CHOICES, default='Pending')
    notes = models.TextField(blank=True)
    manually_completed = models.BooleanField(default=False)
    completion_reason = models.TextField(blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    @property
    def total_price(self):
        return (self.quantity * self.unit_price).quantize(Decimal('0.01'))

    def refresh_receipt_status(self):
        if self.manually_completed:
            self.receipt_status = 'Complete'
            self.pending_quantity = ZERO
            self.pending_weight = ZERO
            return

        self.pending_quantity = max(ZERO, self.quantity - self.received_quantity)
        self.pending_weight = max(ZERO, self.weight - self.received_weight)
        if self.received_quantity <= 0:
            self.receipt_status = 'Pending'
        elif self.received_quantity >= self.quantity:
            self.receipt_status = 'Complete'
        else:
            self.receipt_status = 'Partial'

    def save(self, *args, **kwargs):
        if self.product_id and not self.product_name:
            self.product_name = self.product.product_name
        if self.product_id and not self.product_code:
            self.product_code = self.product.product_code
        if self.pk is None:
            self.refresh_receipt_status()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['purchase_order', 'product'], name='idx_poitem_po_product'),
        ]


class GoodsReceiptNote(models.Model):
    """Record of a supplier delivery against a purchase order"""
    STATUS_CHOICES = [
        ('Draft', 'Draft'),
        ('Received', 'Received'),
        ('Under_Review', 'Under Review'),
        ('Approved', 'Approved'),
        ('Rejected', 'Rejected'),
        ('Completed', 'Completed'),
    ]
    RECEIPT_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Partial', 'Partial'),
        ('Complete', 'Complete'),
    ]
    QUALITY_CHECK_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('In_Progress', 'In Progress'),
        ('Completed', 'Completed'),
        ('Failed', 'Failed'),
    ]
    APPROVAL_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Approved', 'Approved'),
        ('Rejected', 'Rejected'),
    ]

    grn_number = models.CharField(max_length=50, unique=True, blank=True)
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.PROTECT, related_name='grns')
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='grns')
    receipt_date = models.DateField(default=timezone.localdate)
    delivery_note_number = models.CharField(max_length=100, blank=True)
    vehicle_number = models.CharField(max_length=50, blank=True)
    received_by = models.CharField(max_length=150, blank=True)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.SET_NULL, null=True, blank=True, related_name='grns')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Draft')
    receipt_status = models.CharField(max_length=20, choices=RECEIPT_STATUS_CHOICES, default='Pending')
    quality_check_status = models.CharField(max_length=20, choices=QUALITY_CHECK_STATUS_CHOICES, default='Pending')
    approval_status = models.CharField(max_length=20, choices=APPROVAL_STATUS_CHOICES, default='Pending')
    approved_by = models.CharField(max_length=150, blank=True)
    approved_date = models.DateTimeField(null=True, blank=True)
    total_received_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    total_accepted_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    total_rejected_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    total_damage_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    total_value = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='grns')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.grn_number or f"GRN-{self.id}"

    def save(self, *args, **kwargs):
        if not self.grn_number:
            self.grn_number = next_counted_code(
                GoodsReceiptNote.objects.all(), 'grn_number', f'{document_prefix()}/GRN/',
                start=GoodsReceiptNote.objects.count() + 1, width=2
            )
        super().save(*args, **kwargs)

    def refresh_totals(self):
        """Recompute quantity totals and the quality-check roll-up from the items"""
        items = list(self.items.all())
        self.total_received_quantity = sum((i.received_quantity for i in items), ZERO)
        self.total_accepted_quantity = sum((i.accepted_quantity for i in items), ZERO)
        self.total_rejected_quantity = sum((i.rejected_quantity for i in items), ZERO)
        self.total_damage_quantity = sum((i.damage_quantity for i in items), ZERO)
        self.total_value = sum((i.total_value for i in items), ZERO)

        statuses = [i.quality_status for i in items]
        if not statuses or all(s == 'Pending' for s in statuses):
            self.quality_check_status = 'Pending'
        elif all(s == 'Approved' for s in statuses):
            self.quality_check_status = 'Completed'
        elif all(s == 'Rejected' for s in statuses):
            self.quality_check_status = 'Failed'
        else:
            self.quality_check_status = 'In_Progress'

    def refresh_receipt_status(self):
        items = list(self.items.all())
        any_received = any(i.received_quantity > 0 or i.manually_completed for i in items)
        if items and any_received and all(i.pending_quantity <= 0 or i.manually_completed for i in items):
            self.receipt_status = 'Complete'
        elif any_received:
            self.receipt_status = 'Partial'
        else:
            self.receipt_status = 'Pending'

    class Meta:
        db_table = 'goods_receipt_notes'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_grn_status'),
            models.Index(fields=['purchase_order', 'status'], name='idx_grn_po_status'),
        ]


class GRNItem(models.Model):
    """Goods receipt note line items"""
    QUALITY_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Approved', 'Approved'),
        ('Rejected', 'Rejected'),
        ('Partial', 'Partial'),
    ]

    grn = models.ForeignKey(GoodsReceiptNote, on_delete=models.CASCADE, related_name='items')
    purchase_order_item = models.ForeignKey(PurchaseOrderItem, on_delete=models.PROTECT, related_name='grn_items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='grn_items')
    product_name = models.CharField(max_length=200)
    product_code = models.CharField(max_length=20, blank=True)
    ordered_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    previously_received_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    received_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    received_weight = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    pending_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    accepted_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    rejected_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    damage_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    quality_status = models.CharField(max_length=20, choices=QUALITY_STATUS_CHOICES, default='Pending')
    quality_notes = models.TextField(blank=True)
    batch_number = models.CharField(max_length=100, blank=True)
    unit = models.CharField(max_length=20, default='Bags')
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total_value = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    manually_completed = models.BooleanField(default=False)
    completion_reason = models.TextField(blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.product_name} x {self.received_quantity}"

    @property
    def is_complete(self):
        return self.manually_completed or self.pending_quantity <= 0

    def save(self, *args, **kwargs):
        if self.accepted_quantity <= 0 and self.received_quantity > 0:
            self.accepted_quantity = max(ZERO, self.received_quantity - self.rejected_quantity - self.damage_quantity)
        self.total_value = (self.received_quantity * self.unit_price).quantize(Decimal('0.01'))
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'grn_items'
        ordering = ['id']

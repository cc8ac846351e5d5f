from django.db import models
from django.utils import timezone
from decimal import Decimal

from textile_erp.core.numbering import next_counted_code
from textile_erp.catalog.models import Category, Product
from textile_erp.parties.models import Supplier
from textile_erp.locations.models import Warehouse

ZERO = Decimal('0')


class InventoryLot(models.Model):
    """A received batch of stock, tracked from its GRN until it is consumed"""
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Reserved', 'Reserved'),
        ('Consumed', 'Consumed'),
    ]
    QUALITY_GRADE_CHOICES = [
        ('A', 'A'),
        ('B', 'B'),
        ('C', 'C'),
    ]

    lot_number = models.CharField(max_length=30, unique=True, blank=True)
    grn = models.ForeignKey('purchasing.GoodsReceiptNote', on_delete=models.PROTECT, null=True, blank=True, related_name='lots')
    grn_item = models.ForeignKey('purchasing.GRNItem', on_delete=models.PROTECT, null=True, blank=True, related_name='lots')
    purchase_order = models.ForeignKey('purchasing.PurchaseOrder', on_delete=models.PROTECT, null=True, blank=True, related_name='lots')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='lots')
    product_name = models.CharField(max_length=200, blank=True)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, null=True, blank=True, related_name='lots')
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, null=True, blank=True, related_name='lots')
    supplier_name = models.CharField(max_length=200, blank=True)
    supplier_batch_number = models.CharField(max_length=100, blank=True)

    received_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=ZERO)
    current_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=ZERO)
    reserved_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=ZERO)
    available_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=ZERO)
    unit = models.CharField(max_length=20, default='Bags')
    total_weight = models.DecimalField(max_digits=12, decimal_places=3, default=ZERO)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)

    warehouse = models.ForeignKey(Warehouse, on_delete=models.SET_NULL, null=True, blank=True, related_name='lots')
    received_date = models.DateTimeField(default=timezone.now)
    expiry_date = models.DateField(null=True, blank=True)
    quality_grade = models.CharField(max_length=2, choices=QUALITY_GRADE_CHOICES, default='A')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Active')
    notes = models.TextField(blank=True)
    created_by = models.CharField(max_length=150, blank=True)
    last_modified_by = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.lot_number or f"LOT-{self.id}"

    @staticmethod
    def lot_prefix(when=None):
        when = timezone.localtime(when or timezone.now())
        return f"LOT{when.year}{when.month:02d}"

    @property
    def total_cost(self):
        return (self.current_quantity * self.unit_cost).quantize(Decimal('0.01'))

    def refresh_stock_state(self):
        """Derive available quantity and status from current and reserved quantities"""
        self.available_quantity = max(ZERO, self.current_quantity - self.reserved_quantity)
        if self.current_quantity <= 0:
            self.status = 'Consumed'
        elif self.reserved_quantity >= self.current_quantity:
            self.status = 'Reserved'
        elif self.status == 'Reserved':
            self.status = 'Active'

    def save(self, *args, **kwargs):
        if not self.lot_number:
            prefix = self.lot_prefix()
            self.lot_number = next_counted_code(
                InventoryLot.objects.all(), 'lot_number', prefix,
                start=InventoryLot.objects.filter(lot_number__startswith=prefix).count() + 1, width=4
            )
        if self.product_id and not self.product_name:
            self.product_name = self.product.product_name
        if self.supplier_id and not self.supplier_name:
            self.supplier_name = self.supplier.company_name
        self.refresh_stock_state()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'inventory_lots'
        ordering = ['-received_date', '-id']
        indexes = [
            models.Index(fields=['product', 'status', 'received_date'], name='idx_lot_product_fifo'),
            models.Index(fields=['status'], name='idx_lot_status'),
            models.Index(fields=['warehouse'], name='idx_lot_warehouse'),
        ]


class LotMovement(models.Model):
    """Stock movement history of a lot"""
    MOVEMENT_TYPE_CHOICES = [
        ('Received', 'Received'),
        ('Issued', 'Issued'),
        ('Returned', 'Returned'),
        ('Adjusted', 'Adjusted'),
        ('Transferred', 'Transferred'),
        ('Damaged', 'Damaged'),
        ('Reserved', 'Reserved'),
    ]

    lot = models.ForeignKey(InventoryLot, on_delete=models.CASCADE, related_name='movements')
    movement_type = models.CharField(max_length=20, choices=MOVEMENT_TYPE_CHOICES)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=ZERO)
    weight = models.DecimalField(max_digits=12, decimal_places=3, default=ZERO)
    date = models.DateTimeField(default=timezone.now)
    reference = models.CharField(max_length=500, blank=True, db_index=True)
    notes = models.TextField(blank=True)
    performed_by = models.CharField(max_length=150, blank=True)

    def __str__(self):
        return f"{self.movement_type} {self.quantity} ({self.lot.lot_number})"

    class Meta:
        db_table = 'lot_movements'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['movement_type', 'reference'], name='idx_movement_type_ref'),
        ]

from django.db import models
from django.utils import timezone
from decimal import Decimal

from textile_erp.core.models import User
from textile_erp.core.numbering import document_prefix, next_counted_code, next_sequential_code
from textile_erp.catalog.models import Category, Product
from textile_erp.parties.models import Customer
from textile_erp.locations.models import Warehouse

ZERO = Decimal('0')

QUANTITY_FIELD_KWARGS = {'max_digits': 12, 'decimal_places': 3, 'default': ZERO}


class SalesOrder(models.Model):
    """Customer order, fulfilled by reservation/shipping or by delivery challans"""
    STATUS_CHOICES = [
        ('Draft', 'Draft'),
        ('Pending', 'Pending'),
        ('Confirmed', 'Confirmed'),
        ('Processing', 'Processing'),
        ('Shipped', 'Shipped'),
        ('Delivered', 'Delivered'),
        ('Cancelled', 'Cancelled'),
        ('Returned', 'Returned'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Partial', 'Partial'),
        ('Paid', 'Paid'),
        ('Overdue', 'Overdue'),
        ('Cancelled', 'Cancelled'),
    ]

    LOCKED_STATUSES = ('Shipped', 'Delivered', 'Cancelled')
    # Orders still waiting for goods; the first dispatch moves them to Processing
    OPEN_STATUSES = ('Draft', 'Pending', 'Confirmed')

    so_number = models.CharField(max_length=50, unique=True, blank=True)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='sales_orders')
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='sales_orders', null=True, blank=True)
    order_date = models.DateField(default=timezone.localdate)
    expected_delivery_date = models.DateField(null=True, blank=True)
    actual_delivery_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Draft')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='Pending')
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)

    shipping_contact = models.CharField(max_length=200, blank=True)
    shipping_phone = models.CharField(max_length=20, blank=True)
    shipping_address = models.TextField(blank=True)
    shipping_city = models.CharField(max_length=100, blank=True)
    shipping_pincode = models.CharField(max_length=10, blank=True)

    tracking_number = models.CharField(max_length=100, blank=True)
    courier_company = models.CharField(max_length=100, blank=True)
    shipped_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)
    cancelled_by = models.CharField(max_length=150, blank=True)
    cancelled_date = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_orders')
    last_modified_by = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.so_number or f"SO-{self.id}"

    def save(self, *args, **kwargs):
        if not self.so_number:
            self.so_number = next_counted_code(
                SalesOrder.objects.all(), 'so_number', f'{document_prefix()}/SO/',
                start=SalesOrder.objects.count() + 1, width=2
            )
        super().save(*args, **kwargs)

    @property
    def completion_percentage(self):
        items = list(self.items.all())
        ordered = sum((item.quantity for item in items), ZERO)
        if ordered <= 0:
            return 0
        dispatched = sum((item.delivered_quantity for item in items), ZERO)
        return min(100, int(round(dispatched / ordered * 100)))

    def get_total_quantity(self):
        return sum((item.quantity for item in self.items.all()), ZERO)

    def get_total_weight(self):
        return sum((item.weight for item in self.items.all()), ZERO)

    def refresh_total_amount(self):
        self.total_amount = sum((item.total_price for item in self.items.all()), ZERO)

    def record_status_change(self, from_status, to_status, changed_by='', notes=''):
        return WorkflowHistory.objects.create(
            sales_order=self,
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by or 'System',
            notes=notes,
            system_generated=not changed_by,
        )

    def update_dispatch_status(self, challans=None, changed_by=''):
        """
        Roll challan dispatches up into the order items and the order status.

        Every item gets the summed dispatch quantity of all challans as its
        shipped/delivered quantity. An item is complete once dispatched >=
        ordered or any challan marked it complete. The order becomes Delivered
        when all items are complete; otherwise the first dispatch moves an open
        order to Processing. Returns True when the order status changed.
        """
        if challans is None:
            challans = self.challans.prefetch_related('items')

        dispatched = {}
        dispatched_weight = {}
        manual = set()
        for challan in challans:
            for challan_item in challan.items.all():
                key = challan_item.sales_order_item_id
                dispatched[key] = dispatched.get(key, ZERO) + challan_item.dispatch_quantity
                dispatched_weight[key] = dispatched_weight.get(key, ZERO) + challan_item.weight
                if challan_item.manually_completed:
                    manual.add(key)

        items = list(self.items.all())
        any_dispatched = False
        for item in items:
            quantity = dispatched.get(item.id, ZERO)
            item.shipped_quantity = quantity
            item.delivered_quantity = quantity
            item.dispatched_weight = dispatched_weight.get(item.id, ZERO)
            item.manually_completed = item.id in manual
            if quantity > 0:
                any_dispatched = True

            if item.is_dispatch_complete:
                item.item_status = 'Delivered'
            elif quantity > 0:
                item.item_status = 'Processing'
            elif item.item_status in ('Processing', 'Delivered'):
                item.item_status = 'Reserved' if item.reserved_quantity >= item.quantity else 'Pending'
            item.save()

        old_status = self.status
        if items and all(item.is_dispatch_complete for item in items):
            self.status = 'Delivered'
            if not self.actual_delivery_date:
                self.actual_delivery_date = timezone.localdate()
        elif any_dispatched and self.status in self.OPEN_STATUSES:
            self.status = 'Processing'
        self.save()

        if self.status != old_status:
            self.record_status_change(
                old_status, self.status, changed_by,
                notes='Status updated from challan dispatch quantities'
            )
            return True
        return False

    class Meta:
        db_table = 'sales_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_so_status'),
            models.Index(fields=['customer', 'status'], name='idx_so_customer_status'),
            models.Index(fields=['-order_date', '-created_at'], name='idx_so_date_created'),
        ]


class SalesOrderItem(models.Model):
    """Sales order line items"""
    ITEM_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Reserved', 'Reserved'),
        ('Processing', 'Processing'),
        ('Shipped', 'Shipped'),
        ('Delivered', 'Delivered'),
        ('Cancelled', 'Cancelled'),
    ]

    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='sales_order_items')
    product_name = models.CharField(max_length=200)
    product_code = models.CharField(max_length=20, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit = models.CharField(max_length=20, default='Bags')
    weight = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    reserved_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    shipped_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    delivered_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    dispatched_weight = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    deducted_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    manually_completed = models.BooleanField(default=False)
    item_status = models.CharField(max_length=20, choices=ITEM_STATUS_CHOICES, default='Pending')
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    @property
    def total_price(self):
        return (self.quantity * self.unit_price).quantize(Decimal('0.01'))

    @property
    def is_dispatch_complete(self):
        return self.manually_completed or self.delivered_quantity >= self.quantity

    def save(self, *args, **kwargs):
        if self.product_id and not self.product_name:
            self.product_name = self.product.product_name
        if self.product_id and not self.product_code:
            self.product_code = self.product.product_code
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'sales_order_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['sales_order', 'product'], name='idx_soitem_so_product'),
        ]


class InventoryAllocation(models.Model):
    """Quantity of a lot held for a sales order line"""
    STATUS_CHOICES = [
        ('Reserved', 'Reserved'),
        ('Allocated', 'Allocated'),
        ('Shipped', 'Shipped'),
        ('Delivered', 'Delivered'),
        ('Released', 'Released'),
    ]

    order_item = models.ForeignKey(SalesOrderItem, on_delete=models.CASCADE, related_name='allocations')
    lot = models.ForeignKey('inventory.InventoryLot', on_delete=models.PROTECT, related_name='allocations')
    allocated_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    reserved_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Reserved')

    def __str__(self):
        return f"{self.allocated_quantity} of {self.lot.lot_number} ({self.status})"

    class Meta:
        db_table = 'inventory_allocations'
        ordering = ['reserved_date', 'id']


class WorkflowHistory(models.Model):
    """Status transitions of a sales order"""
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='workflow_history')
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20)
    changed_by = models.CharField(max_length=150, blank=True)
    changed_date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    system_generated = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.sales_order.so_number}: {self.from_status} -> {self.to_status}"

    class Meta:
        db_table = 'sales_order_workflow_history'
        ordering = ['changed_date', 'id']


class SalesChallan(models.Model):
    """Delivery challan dispatching part or all of a sales order"""
    STATUS_CHOICES = [
        ('Prepared', 'Prepared'),
        ('Packed', 'Packed'),
        ('Dispatched', 'Dispatched'),
        ('In_Transit', 'In Transit'),
        ('Delivered', 'Delivered'),
        ('Cancelled', 'Cancelled'),
    ]

    DELETABLE_STATUSES = ('Prepared', 'Packed')
    IN_TRANSIT_STATUSES = ('Dispatched', 'In_Transit')

    challan_number = models.CharField(max_length=30, unique=True, blank=True)
    challan_date = models.DateField(default=timezone.localdate)
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.PROTECT, related_name='challans')
    so_number = models.CharField(max_length=50, blank=True)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='challans', null=True, blank=True)
    customer_name = models.CharField(max_length=200, blank=True)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='challans')
    expected_delivery_date = models.DateField(null=True, blank=True)
    delivery_address = models.TextField(blank=True)
    delivery_city = models.CharField(max_length=100, blank=True)
    contact_person = models.CharField(max_length=200, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    transport_name = models.CharField(max_length=200, blank=True)
    vehicle_number = models.CharField(max_length=50, blank=True)
    driver_name = models.CharField(max_length=100, blank=True)
    driver_phone = models.CharField(max_length=20, blank=True)
    lr_number = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Prepared')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='challans')
    last_modified_by = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.challan_number or f"CH-{self.id}"

    @staticmethod
    def challan_prefix(when=None):
        when = timezone.localtime(when or timezone.now())
        return f"CH{when.year}{when.month:02d}"

    def save(self, *args, **kwargs):
        if not self.challan_number:
            self.challan_number = next_sequential_code(
                SalesChallan.objects.all(), 'challan_number', self.challan_prefix(), width=4
            )
        if self.sales_order_id and not self.so_number:
            self.so_number = self.sales_order.so_number
        if self.customer_id and not self.customer_name:
            self.customer_name = self.customer.company_name
        super().save(*args, **kwargs)

    def get_total_quantity(self):
        return sum((item.dispatch_quantity for item in self.items.all()), ZERO)

    def get_total_weight(self):
        return sum((item.weight for item in self.items.all()), ZERO)

    def add_status_history(self, status, notes='', updated_by=''):
        return ChallanStatusHistory.objects.create(
            challan=self,
            status=status,
            notes=notes or f"Status changed to {status}",
            updated_by=updated_by or 'System',
        )

    class Meta:
        db_table = 'sales_challans'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_challan_status'),
            models.Index(fields=['sales_order', 'status'], name='idx_challan_so_status'),
        ]


class SalesChallanItem(models.Model):
    """Quantity of a sales order line dispatched on a challan"""
    ITEM_STATUS_CHOICES = [
        ('Prepared', 'Prepared'),
        ('Packed', 'Packed'),
        ('Dispatched', 'Dispatched'),
        ('Delivered', 'Delivered'),
    ]

    challan = models.ForeignKey(SalesChallan, on_delete=models.CASCADE, related_name='items')
    sales_order_item = models.ForeignKey(SalesOrderItem, on_delete=models.PROTECT, related_name='challan_items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='challan_items')
    product_name = models.CharField(max_length=200)
    product_code = models.CharField(max_length=20, blank=True)
    ordered_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    dispatch_quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    unit = models.CharField(max_length=20, default='Bags')
    weight = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    manually_completed = models.BooleanField(default=False)
    completion_reason = models.TextField(blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    item_status = models.CharField(max_length=20, choices=ITEM_STATUS_CHOICES, default='Prepared')
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.product_name} x {self.dispatch_quantity}"

    class Meta:
        db_table = 'sales_challan_items'
        ordering = ['id']


class ChallanStatusHistory(models.Model):
    challan = models.ForeignKey(SalesChallan, on_delete=models.CASCADE, related_name='status_history')
    status = models.CharField(max_length=20)
    timestamp = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    updated_by = models.CharField(max_length=150, blank=True)

    def __str__(self):
        return f"{self.challan.challan_number}: {self.status}"

    class Meta:
        db_table = 'sales_challan_status_history'
        ordering = ['timestamp', 'id']

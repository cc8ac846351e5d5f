from django.db import models
from decimal import Decimal

from textile_erp.core.numbering import next_sequential_code

UNIT_CHOICES = [
    ('Bags', 'Bags'),
    ('Rolls', 'Rolls'),
    ('Kg', 'Kg'),
    ('Meters', 'Meters'),
    ('Pieces', 'Pieces'),
]


class Unit(models.Model):
    """Units of measure offered on document lines"""
    name = models.CharField(max_length=50, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'units'
        ordering = ['name']


class Category(models.Model):
    """Product categories (cotton yarn, polyester, ...)"""
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
    ]
    CATEGORY_TYPE_CHOICES = [
        ('Cotton Yarn', 'Cotton Yarn'),
        ('Polyester', 'Polyester'),
        ('Blended Yarn', 'Blended Yarn'),
        ('Raw Material', 'Raw Material'),
        ('Finished Goods', 'Finished Goods'),
    ]

    category_code = models.CharField(max_length=20, unique=True, blank=True)
    category_name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Active')
    parent_category = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    category_type = models.CharField(max_length=30, choices=CATEGORY_TYPE_CHOICES, default='Cotton Yarn')
    unit = models.CharField(max_length=20, choices=UNIT_CHOICES, default='Bags')
    standard_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('100'))
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.category_name

    def save(self, *args, **kwargs):
        if not self.category_code:
            self.category_code = next_sequential_code(Category.objects.all(), 'category_code', 'CAT')
        else:
            self.category_code = self.category_code.upper()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['sort_order', 'category_name']


class Product(models.Model):
    """Product master"""
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
        ('Discontinued', 'Discontinued'),
    ]
    QUALITY_CHOICES = [
        ('Premium', 'Premium'),
        ('Standard', 'Standard'),
        ('Economy', 'Economy'),
    ]

    product_code = models.CharField(max_length=20, unique=True, blank=True)
    product_name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='products')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Active')
    supplier = models.ForeignKey('parties.Supplier', on_delete=models.SET_NULL, null=True, blank=True, related_name='products')

    # Specifications
    yarn_count = models.CharField(max_length=50, blank=True)
    color = models.CharField(max_length=50, default='Natural', blank=True)
    quality = models.CharField(max_length=20, choices=QUALITY_CHOICES, default='Standard')
    weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('100'))
    composition = models.CharField(max_length=200, blank=True)

    # Stock hints
    unit = models.CharField(max_length=20, choices=UNIT_CHOICES, default='Bags')
    minimum_stock = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('10'))
    reorder_level = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('50'))

    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product_code} - {self.product_name}"

    def save(self, *args, **kwargs):
        if not self.product_code:
            self.product_code = next_sequential_code(Product.objects.all(), 'product_code', 'PROD')
        else:
            self.product_code = self.product_code.upper()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'products'
        ordering = ['product_name']
        indexes = [
            models.Index(fields=['status'], name='idx_product_status'),
            models.Index(fields=['category', 'status'], name='idx_product_category_status'),
        ]

from django.db import models


def derive_pan_from_gst(gst_number):
    """A GSTIN embeds the PAN at characters 3-12"""
    if gst_number and len(gst_number) >= 10:
        return gst_number[2:12].upper()
    return ''


class Party(models.Model):
    """Fields shared by customers and suppliers"""
    company_name = models.CharField(max_length=200, db_index=True)
    gst_number = models.CharField(max_length=15, blank=True, db_index=True)
    pan_number = models.CharField(max_length=10, blank=True)
    contact_person = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def __str__(self):
        return self.company_name

    def save(self, *args, **kwargs):
        self.company_name = (self.company_name or '').strip()
        self.gst_number = (self.gst_number or '').strip().upper()
        self.pan_number = (self.pan_number or '').strip().upper()
        if not self.pan_number:
            self.pan_number = derive_pan_from_gst(self.gst_number)
        super().save(*args, **kwargs)


class Customer(Party):
    """Customers"""
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
    ]

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Active')

    class Meta:
        db_table = 'customers'
        ordering = ['company_name']


class Supplier(Party):
    """Suppliers"""
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
        ('Blocked', 'Blocked'),
    ]

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Active')

    class Meta:
        db_table = 'suppliers'
        ordering = ['company_name']
        indexes = [
            models.Index(fields=['status'], name='idx_supplier_status'),
        ]

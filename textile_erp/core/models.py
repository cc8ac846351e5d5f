from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    @property
    def display_name(self):
        full_name = self.get_full_name()
        return full_name or self.username


class Setting(models.Model):
    """System settings stored as key/value pairs (company details printed on challans, etc.)"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.objects.filter(key=key).first()
        if setting is None:
            return default
        return setting.value

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Changed'),
        ('import', 'Master Data Import'),
        ('po_cancel', 'Purchase Order Cancelled'),
        ('grn_create', 'GRN Created'),
        ('grn_approve', 'GRN Approved'),
        ('grn_item_complete', 'GRN Item Marked Complete'),
        ('stock_movement', 'Stock Movement'),
        ('stock_transfer', 'Stock Transfer'),
        ('so_reserve', 'Sales Order Stock Reserved'),
        ('so_ship', 'Sales Order Shipped'),
        ('so_deliver', 'Sales Order Delivered'),
        ('so_cancel', 'Sales Order Cancelled'),
        ('so_recalculate', 'Sales Order Statuses Recalculated'),
        ('challan_create', 'Sales Challan Created'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, challan number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., PO number, SO number, lot number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
            models.Index(fields=['object_reference'], name='idx_audit_reference'),
        ]

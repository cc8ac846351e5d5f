from django.db import models


class Warehouse(models.Model):
    """Storage locations: the shop floor, godowns and anything else holding stock"""
    WAREHOUSE_TYPE_CHOICES = [
        ('Shop', 'Shop'),
        ('Godown', 'Godown'),
        ('Others', 'Others'),
    ]

    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, unique=True)
    warehouse_type = models.CharField(max_length=20, choices=WAREHOUSE_TYPE_CHOICES, default='Godown')
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'warehouses'
        ordering = ['name']

import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('locations', '0001_initial'),
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PurchaseOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('po_number', models.CharField(blank=True, max_length=50, unique=True)),
                ('order_date', models.DateField(default=django.utils.timezone.localdate)),
                ('expected_delivery_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('Draft', 'Draft'), ('Sent', 'Sent'), ('Acknowledged', 'Acknowledged'), ('Approved', 'Approved'), ('Partially_Received', 'Partially Received'), ('Fully_Received', 'Fully Received'), ('Cancelled', 'Cancelled'), ('Closed', 'Closed')], default='Draft', max_length=30)),
                ('approval_status', models.CharField(choices=[('Pending', 'Pending'), ('Approved', 'Approved'), ('Rejected', 'Rejected')], default='Pending', max_length=20)),
                ('approved_by', models.CharField(blank=True, max_length=150)),
                ('approved_date', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('payment_status', models.CharField(choices=[('Pending', 'Pending'), ('Partial', 'Partial'), ('Paid', 'Paid')], default='Pending', max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14)),
                ('notes', models.TextField(blank=True)),
                ('internal_notes', models.TextField(blank=True)),
                ('sent_date', models.DateTimeField(blank=True, null=True)),
                ('acknowledged_date', models.DateTimeField(blank=True, null=True)),
                ('total_grns', models.PositiveIntegerField(default=0)),
                ('completion_percentage', models.PositiveSmallIntegerField(default=0)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('cancelled_by', models.CharField(blank=True, max_length=150)),
                ('cancelled_date', models.DateTimeField(blank=True, null=True)),
                ('revision_number', models.PositiveIntegerField(default=1)),
                ('last_modified_by', models.CharField(blank=True, max_length=150)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='catalog.category')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_orders', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='parties.supplier')),
            ],
            options={
                'db_table': 'purchase_orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_po_status'),
                    models.Index(fields=['supplier', 'status'], name='idx_po_supplier_status'),
                    models.Index(fields=['-order_date', '-created_at'], name='idx_po_date_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_name', models.CharField(max_length=200)),
                ('product_code', models.CharField(blank=True, max_length=20)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('unit', models.CharField(default='Bags', max_length=20)),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('received_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('received_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('pending_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('pending_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('receipt_status', models.CharField(choices=[('Pending', 'Pending'), ('Partial', 'Partial'), ('Complete', 'Complete')], default='Pending', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('manually_completed', models.BooleanField(default=False)),
                ('completion_reason', models.TextField(blank=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchase_order_items', to='catalog.product')),
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='purchasing.purchaseorder')),
            ],
            options={
                'db_table': 'purchase_order_items',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['purchase_order', 'product'], name='idx_poitem_po_product'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GoodsReceiptNote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('grn_number', models.CharField(blank=True, max_length=50, unique=True)),
                ('receipt_date', models.DateField(default=django.utils.timezone.localdate)),
                ('delivery_note_number', models.CharField(blank=True, max_length=100)),
                ('vehicle_number', models.CharField(blank=True, max_length=50)),
                ('received_by', models.CharField(blank=True, max_length=150)),
                ('status', models.CharField(choices=[('Draft', 'Draft'), ('Received', 'Received'), ('Under_Review', 'Under Review'), ('Approved', 'Approved'), ('Rejected', 'Rejected'), ('Completed', 'Completed')], default='Draft', max_length=20)),
                ('receipt_status', models.CharField(choices=[('Pending', 'Pending'), ('Partial', 'Partial'), ('Complete', 'Complete')], default='Pending', max_length=20)),
                ('quality_check_status', models.CharField(choices=[('Pending', 'Pending'), ('In_Progress', 'In Progress'), ('Completed', 'Completed'), ('Failed', 'Failed')], default='Pending', max_length=20)),
                ('approval_status', models.CharField(choices=[('Pending', 'Pending'), ('Approved', 'Approved'), ('Rejected', 'Rejected')], default='Pending', max_length=20)),
                ('approved_by', models.CharField(blank=True, max_length=150)),
                ('approved_date', models.DateTimeField(blank=True, null=True)),
                ('total_received_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('total_accepted_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('total_rejected_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('total_damage_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('total_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='grns', to=settings.AUTH_USER_MODEL)),
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='grns', to='purchasing.purchaseorder')),
                ('supplier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='grns', to='parties.supplier')),
                ('warehouse', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='grns', to='locations.warehouse')),
            ],
            options={
                'db_table': 'goods_receipt_notes',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_grn_status'),
                    models.Index(fields=['purchase_order', 'status'], name='idx_grn_po_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GRNItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_name', models.CharField(max_length=200)),
                ('product_code', models.CharField(blank=True, max_length=20)),
                ('ordered_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('previously_received_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('received_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('received_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('pending_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('accepted_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('rejected_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('damage_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('quality_status', models.CharField(choices=[('Pending', 'Pending'), ('Approved', 'Approved'), ('Rejected', 'Rejected'), ('Partial', 'Partial')], default='Pending', max_length=20)),
                ('quality_notes', models.TextField(blank=True)),
                ('batch_number', models.CharField(blank=True, max_length=100)),
                ('unit', models.CharField(default='Bags', max_length=20)),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('total_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14)),
                ('manually_completed', models.BooleanField(default=False)),
                ('completion_reason', models.TextField(blank=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('grn', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='purchasing.goodsreceiptnote')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='grn_items', to='catalog.product')),
                ('purchase_order_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='grn_items', to='purchasing.purchaseorderitem')),
            ],
            options={
                'db_table': 'grn_items',
                'ordering': ['id'],
            },
        ),
    ]

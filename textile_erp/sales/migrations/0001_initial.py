import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('inventory', '0001_initial'),
        ('locations', '0001_initial'),
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SalesOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('so_number', models.CharField(blank=True, max_length=50, unique=True)),
                ('order_date', models.DateField(default=django.utils.timezone.localdate)),
                ('expected_delivery_date', models.DateField(blank=True, null=True)),
                ('actual_delivery_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('Draft', 'Draft'), ('Pending', 'Pending'), ('Confirmed', 'Confirmed'), ('Processing', 'Processing'), ('Shipped', 'Shipped'), ('Delivered', 'Delivered'), ('Cancelled', 'Cancelled'), ('Returned', 'Returned')], default='Draft', max_length=20)),
                ('payment_status', models.CharField(choices=[('Pending', 'Pending'), ('Partial', 'Partial'), ('Paid', 'Paid'), ('Overdue', 'Overdue'), ('Cancelled', 'Cancelled')], default='Pending', max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14)),
                ('shipping_contact', models.CharField(blank=True, max_length=200)),
                ('shipping_phone', models.CharField(blank=True, max_length=20)),
                ('shipping_address', models.TextField(blank=True)),
                ('shipping_city', models.CharField(blank=True, max_length=100)),
                ('shipping_pincode', models.CharField(blank=True, max_length=10)),
                ('tracking_number', models.CharField(blank=True, max_length=100)),
                ('courier_company', models.CharField(blank=True, max_length=100)),
                ('shipped_date', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('cancelled_by', models.CharField(blank=True, max_length=150)),
                ('cancelled_date', models.DateTimeField(blank=True, null=True)),
                ('last_modified_by', models.CharField(blank=True, max_length=150)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='sales_orders', to='catalog.category')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sales_orders', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales_orders', to='parties.customer')),
            ],
            options={
                'db_table': 'sales_orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_so_status'),
                    models.Index(fields=['customer', 'status'], name='idx_so_customer_status'),
                    models.Index(fields=['-order_date', '-created_at'], name='idx_so_date_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SalesOrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_name', models.CharField(max_length=200)),
                ('product_code', models.CharField(blank=True, max_length=20)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('unit', models.CharField(default='Bags', max_length=20)),
                ('weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('reserved_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('shipped_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('delivered_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('dispatched_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('deducted_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('manually_completed', models.BooleanField(default=False)),
                ('item_status', models.CharField(choices=[('Pending', 'Pending'), ('Reserved', 'Reserved'), ('Processing', 'Processing'), ('Shipped', 'Shipped'), ('Delivered', 'Delivered'), ('Cancelled', 'Cancelled')], default='Pending', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales_order_items', to='catalog.product')),
                ('sales_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='sales.salesorder')),
            ],
            options={
                'db_table': 'sales_order_items',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['sales_order', 'product'], name='idx_soitem_so_product'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InventoryAllocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('allocated_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('reserved_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('status', models.CharField(choices=[('Reserved', 'Reserved'), ('Allocated', 'Allocated'), ('Shipped', 'Shipped'), ('Delivered', 'Delivered'), ('Released', 'Released')], default='Reserved', max_length=20)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='inventory.inventorylot')),
                ('order_item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='sales.salesorderitem')),
            ],
            options={
                'db_table': 'inventory_allocations',
                'ordering': ['reserved_date', 'id'],
            },
        ),
        migrations.CreateModel(
            name='WorkflowHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_status', models.CharField(blank=True, max_length=20)),
                ('to_status', models.CharField(max_length=20)),
                ('changed_by', models.CharField(blank=True, max_length=150)),
                ('changed_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True)),
                ('system_generated', models.BooleanField(default=False)),
                ('sales_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='workflow_history', to='sales.salesorder')),
            ],
            options={
                'db_table': 'sales_order_workflow_history',
                'ordering': ['changed_date', 'id'],
            },
        ),
        migrations.CreateModel(
            name='SalesChallan',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('challan_number', models.CharField(blank=True, max_length=30, unique=True)),
                ('challan_date', models.DateField(default=django.utils.timezone.localdate)),
                ('so_number', models.CharField(blank=True, max_length=50)),
                ('customer_name', models.CharField(blank=True, max_length=200)),
                ('expected_delivery_date', models.DateField(blank=True, null=True)),
                ('delivery_address', models.TextField(blank=True)),
                ('delivery_city', models.CharField(blank=True, max_length=100)),
                ('contact_person', models.CharField(blank=True, max_length=200)),
                ('contact_phone', models.CharField(blank=True, max_length=20)),
                ('transport_name', models.CharField(blank=True, max_length=200)),
                ('vehicle_number', models.CharField(blank=True, max_length=50)),
                ('driver_name', models.CharField(blank=True, max_length=100)),
                ('driver_phone', models.CharField(blank=True, max_length=20)),
                ('lr_number', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('Prepared', 'Prepared'), ('Packed', 'Packed'), ('Dispatched', 'Dispatched'), ('In_Transit', 'In Transit'), ('Delivered', 'Delivered'), ('Cancelled', 'Cancelled')], default='Prepared', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('last_modified_by', models.CharField(blank=True, max_length=150)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='challans', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='challans', to='parties.customer')),
                ('sales_order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='challans', to='sales.salesorder')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='challans', to='locations.warehouse')),
            ],
            options={
                'db_table': 'sales_challans',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_challan_status'),
                    models.Index(fields=['sales_order', 'status'], name='idx_challan_so_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SalesChallanItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_name', models.CharField(max_length=200)),
                ('product_code', models.CharField(blank=True, max_length=20)),
                ('ordered_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('dispatch_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('unit', models.CharField(default='Bags', max_length=20)),
                ('weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('manually_completed', models.BooleanField(default=False)),
                ('completion_reason', models.TextField(blank=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('item_status', models.CharField(choices=[('Prepared', 'Prepared'), ('Packed', 'Packed'), ('Dispatched', 'Dispatched'), ('Delivered', 'Delivered')], default='Prepared', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('challan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='sales.saleschallan')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='challan_items', to='catalog.product')),
                ('sales_order_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='challan_items', to='sales.salesorderitem')),
            ],
            options={
                'db_table': 'sales_challan_items',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='ChallanStatusHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(max_length=20)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True)),
                ('updated_by', models.CharField(blank=True, max_length=150)),
                ('challan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='sales.saleschallan')),
            ],
            options={
                'db_table': 'sales_challan_status_history',
                'ordering': ['timestamp', 'id'],
            },
        ),
    ]

import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('locations', '0001_initial'),
        ('parties', '0001_initial'),
        ('purchasing', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='InventoryLot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lot_number', models.CharField(blank=True, max_length=30, unique=True)),
                ('product_name', models.CharField(blank=True, max_length=200)),
                ('supplier_name', models.CharField(blank=True, max_length=200)),
                ('supplier_batch_number', models.CharField(blank=True, max_length=100)),
                ('received_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('current_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('reserved_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('available_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('unit', models.CharField(default='Bags', max_length=20)),
                ('total_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('received_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('quality_grade', models.CharField(choices=[('A', 'A'), ('B', 'B'), ('C', 'C')], default='A', max_length=2)),
                ('status', models.CharField(choices=[('Active', 'Active'), ('Reserved', 'Reserved'), ('Consumed', 'Consumed')], default='Active', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('created_by', models.CharField(blank=True, max_length=150)),
                ('last_modified_by', models.CharField(blank=True, max_length=150)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='catalog.category')),
                ('grn', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='purchasing.goodsreceiptnote')),
                ('grn_item', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='purchasing.grnitem')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='catalog.product')),
                ('purchase_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='purchasing.purchaseorder')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='parties.supplier')),
                ('warehouse', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='lots', to='locations.warehouse')),
            ],
            options={
                'db_table': 'inventory_lots',
                'ordering': ['-received_date', '-id'],
                'indexes': [
                    models.Index(fields=['product', 'status', 'received_date'], name='idx_lot_product_fifo'),
                    models.Index(fields=['status'], name='idx_lot_status'),
                    models.Index(fields=['warehouse'], name='idx_lot_warehouse'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LotMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=[('Received', 'Received'), ('Issued', 'Issued'), ('Returned', 'Returned'), ('Adjusted', 'Adjusted'), ('Transferred', 'Transferred'), ('Damaged', 'Damaged'), ('Reserved', 'Reserved')], max_length=20)),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('date', models.DateTimeField(default=django.utils.timezone.now)),
                ('reference', models.CharField(blank=True, db_index=True, max_length=500)),
                ('notes', models.TextField(blank=True)),
                ('performed_by', models.CharField(blank=True, max_length=150)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='movements', to='inventory.inventorylot')),
            ],
            options={
                'db_table': 'lot_movements',
                'ordering': ['-date', '-id'],
                'indexes': [
                    models.Index(fields=['movement_type', 'reference'], name='idx_movement_type_ref'),
                ],
            },
        ),
    ]

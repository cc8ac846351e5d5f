import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('parties', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Unit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'units',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category_code', models.CharField(blank=True, max_length=20, unique=True)),
                ('category_name', models.CharField(db_index=True, max_length=200)),
                ('description', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('Active', 'Active'), ('Inactive', 'Inactive')], default='Active', max_length=20)),
                ('category_type', models.CharField(choices=[('Cotton Yarn', 'Cotton Yarn'), ('Polyester', 'Polyester'), ('Blended Yarn', 'Blended Yarn'), ('Raw Material', 'Raw Material'), ('Finished Goods', 'Finished Goods')], default='Cotton Yarn', max_length=30)),
                ('unit', models.CharField(choices=[('Bags', 'Bags'), ('Rolls', 'Rolls'), ('Kg', 'Kg'), ('Meters', 'Meters'), ('Pieces', 'Pieces')], default='Bags', max_length=20)),
                ('standard_weight', models.DecimalField(decimal_places=3, default=Decimal('100'), max_digits=10)),
                ('sort_order', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('parent_category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='children', to='catalog.category')),
            ],
            options={
                'db_table': 'categories',
                'verbose_name_plural': 'categories',
                'ordering': ['sort_order', 'category_name'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_code', models.CharField(blank=True, max_length=20, unique=True)),
                ('product_name', models.CharField(db_index=True, max_length=200)),
                ('description', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('Active', 'Active'), ('Inactive', 'Inactive'), ('Discontinued', 'Discontinued')], default='Active', max_length=20)),
                ('yarn_count', models.CharField(blank=True, max_length=50)),
                ('color', models.CharField(blank=True, default='Natural', max_length=50)),
                ('quality', models.CharField(choices=[('Premium', 'Premium'), ('Standard', 'Standard'), ('Economy', 'Economy')], default='Standard', max_length=20)),
                ('weight', models.DecimalField(decimal_places=3, default=Decimal('100'), max_digits=10)),
                ('composition', models.CharField(blank=True, max_length=200)),
                ('unit', models.CharField(choices=[('Bags', 'Bags'), ('Rolls', 'Rolls'), ('Kg', 'Kg'), ('Meters', 'Meters'), ('Pieces', 'Pieces')], default='Bags', max_length=20)),
                ('minimum_stock', models.DecimalField(decimal_places=3, default=Decimal('10'), max_digits=12)),
                ('reorder_level', models.DecimalField(decimal_places=3, default=Decimal('50'), max_digits=12)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='products', to='catalog.category')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='products', to='parties.supplier')),
            ],
            options={
                'db_table': 'products',
                'ordering': ['product_name'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_product_status'),
                    models.Index(fields=['category', 'status'], name='idx_product_category_status'),
                ],
            },
        ),
    ]

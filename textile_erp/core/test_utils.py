"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from textile_erp.locations.models import Warehouse
from textile_erp.catalog.models import Category, Product
from textile_erp.parties.models import Customer, Supplier
from textile_erp.purchasing.models import PurchaseOrder, PurchaseOrderItem
from textile_erp.inventory.models import InventoryLot
from textile_erp.sales.models import SalesOrder, SalesOrderItem
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_warehouse(name=None, code=None, warehouse_type='Godown'):
        """Create a test warehouse"""
        if not name:
            name = f'Warehouse_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'WH_{TestDataFactory.random_string(6).upper()}'
        return Warehouse.objects.create(
            name=name,
            code=code,
            warehouse_type=warehouse_type,
            address=f'Test Address {name}',
            phone='1234567890'
        )

    @staticmethod
    def create_category(name=None, status='Active'):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(category_name=name, status=status)

    @staticmethod
    def create_product(name=None, category=None, supplier=None, unit='Bags', status='Active'):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not category:
            category = TestDataFactory.create_category()
        return Product.objects.create(
            product_name=name,
            category=category,
            supplier=supplier,
            unit=unit,
            status=status
        )

    @staticmethod
    def create_customer(name=None, gst_number='', status='Active', city='Surat'):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        return Customer.objects.create(
            company_name=name,
            gst_number=gst_number,
            phone=f'9{random.randint(100000000, 999999999)}',
            address=f'{name} Mills, Ring Road',
            city=city,
            status=status
        )

    @staticmethod
    def create_supplier(name=None, gst_number='', status='Active'):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(
            company_name=name,
            gst_number=gst_number,
            phone=f'9{random.randint(100000000, 999999999)}',
            city='Coimbatore',
            status=status
        )

    @staticmethod
    def create_purchase_order(user=None, supplier=None, lines=None, status='Draft'):
        """
        Create a purchase order. ``lines`` is a list of
        ``(product, quantity, weight, unit_price)`` tuples.
        """
        if not supplier:
            supplier = TestDataFactory.create_supplier()
        purchase_order = PurchaseOrder.objects.create(supplier=supplier, created_by=user, status=status)
        for product, quantity, weight, unit_price in lines or []:
            PurchaseOrderItem.objects.create(
                purchase_order=purchase_order,
                product=product,
                quantity=Decimal(str(quantity)),
                weight=Decimal(str(weight)),
                unit_price=Decimal(str(unit_price)),
                unit=product.unit,
            )
        purchase_order.refresh_total_amount()
        purchase_order.save()
        return purchase_order

    @staticmethod
    def create_lot(product, quantity, weight=None, received_date=None, warehouse=None, unit_cost='10.00'):
        """Create an inventory lot holding ``quantity`` of ``product``"""
        quantity = Decimal(str(quantity))
        return InventoryLot.objects.create(
            product=product,
            category=product.category,
            received_quantity=quantity,
            current_quantity=quantity,
            total_weight=Decimal(str(weight)) if weight is not None else quantity * 100,
            unit=product.unit,
            unit_cost=Decimal(str(unit_cost)),
            warehouse=warehouse,
            received_date=received_date or timezone.now(),
        )

    @staticmethod
    def create_sales_order(user=None, customer=None, lines=None, status='Draft'):
        """
        Create a sales order. ``lines`` is a list of
        ``(product, quantity, weight, unit_price)`` tuples.
        """
        if not customer:
            customer = TestDataFactory.create_customer()
        sales_order = SalesOrder.objects.create(
            customer=customer,
            created_by=user,
            status=status,
            shipping_address=customer.address,
            shipping_city=customer.city,
        )
        for product, quantity, weight, unit_price in lines or []:
            SalesOrderItem.objects.create(
                sales_order=sales_order,
                product=product,
                quantity=Decimal(str(quantity)),
                weight=Decimal(str(weight)),
                unit_price=Decimal(str(unit_price)),
                unit=product.unit,
            )
        sales_order.refresh_total_amount()
        sales_order.save()
        return sales_order


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()

"""
Test suite for warehouses
"""
from django.test import TestCase
from rest_framework import status
from textile_erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from textile_erp.locations.models import Warehouse
from textile_erp.sales.models import SalesChallan


class WarehouseAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_warehouse_uppercases_code(self):
        data = {'name': 'Sachin GIDC Godown', 'code': 'gdn-sachin', 'warehouse_type': 'Godown'}
        response = self.client.post('/api/v1/warehouses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Warehouse.objects.get().code, 'GDN-SACHIN')

    def test_list_filters(self):
        TestDataFactory.create_warehouse(name='Ring Road Shop', warehouse_type='Shop')
        closed = TestDataFactory.create_warehouse(name='Old Godown')
        closed.is_active = False
        closed.save()

        response = self.client.get('/api/v1/warehouses/', {'active': 'true'})
        self.assertEqual([w['name'] for w in response.data], ['Ring Road Shop'])

        response = self.client.get('/api/v1/warehouses/', {'type': 'Godown'})
        self.assertEqual([w['name'] for w in response.data], ['Old Godown'])

    def test_deactivate_warehouse(self):
        warehouse = TestDataFactory.create_warehouse()
        response = self.client.patch(f'/api/v1/warehouses/{warehouse.id}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

    def test_delete_warehouse_with_challans_refused(self):
        warehouse = TestDataFactory.create_warehouse()
        sales_order = TestDataFactory.create_sales_order(user=self.user, status='Confirmed')
        SalesChallan.objects.create(sales_order=sales_order, customer=sales_order.customer, warehouse=warehouse)

        response = self.client.delete(f'/api/v1/warehouses/{warehouse.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Warehouse.objects.filter(pk=warehouse.id).exists())

    def test_delete_unused_warehouse(self):
        warehouse = TestDataFactory.create_warehouse()
        response = self.client.delete(f'/api/v1/warehouses/{warehouse.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

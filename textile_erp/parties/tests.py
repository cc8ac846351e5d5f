"""
Test suite for the parties module
Tests: customers, suppliers, GST/PAN handling, Excel/CSV master data import
"""
import io

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from openpyxl import Workbook
from rest_framework import status
from textile_erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from textile_erp.catalog.models import Category, Product
from textile_erp.parties.importers import import_master_data
from textile_erp.parties.models import Customer, Supplier, derive_pan_from_gst


def csv_upload(name, text):
    return SimpleUploadedFile(name, text.encode('utf-8'), content_type='text/csv')


def xlsx_upload(name, header, rows):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(header)
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return SimpleUploadedFile(
        name, buffer.getvalue(),
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )


class PartyModelTests(TestCase):
    def test_pan_derived_from_gst(self):
        self.assertEqual(derive_pan_from_gst('24aabcs1234f1z5'), 'AABCS1234F')
        self.assertEqual(derive_pan_from_gst('short'), '')

    def test_save_normalises_identifiers(self):
        customer = Customer.objects.create(company_name='  Shree Textiles ', gst_number='24aabcs1234f1z5')
        self.assertEqual(customer.company_name, 'Shree Textiles')
        self.assertEqual(customer.gst_number, '24AABCS1234F1Z5')
        self.assertEqual(customer.pan_number, 'AABCS1234F')


class CustomerAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        data = {'company_name': 'Laxmi Fabrics', 'gst_number': '27AAACL1234M1Z2', 'city': 'Bhiwandi'}
        response = self.client.post('/api/v1/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['pan_number'], 'AAACL1234M')
        self.assertEqual(response.data['status'], 'Active')

    def test_invalid_gst_length(self):
        response = self.client.post(
            '/api/v1/customers/', {'company_name': 'Laxmi Fabrics', 'gst_number': '27AAACL'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('gst_number', response.data)

    def test_duplicate_gst_rejected(self):
        TestDataFactory.create_customer(gst_number='27AAACL1234M1Z2')
        response = self.client.post(
            '/api/v1/customers/', {'company_name': 'Another', 'gst_number': '27aaacl1234m1z2'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_search_and_status_filter(self):
        TestDataFactory.create_customer(name='Surat Silk House')
        TestDataFactory.create_customer(name='Erode Handlooms', status='Inactive')

        response = self.client.get('/api/v1/customers/', {'search': 'silk'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/customers/', {'status': 'Inactive'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['company_name'], 'Erode Handlooms')

    def test_delete_customer_with_sales_order_refused(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_sales_order(user=self.user, customer=customer)
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Customer.objects.filter(pk=customer.id).exists())

    def test_delete_customer(self):
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class SupplierAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_block_supplier(self):
        supplier = TestDataFactory.create_supplier()
        response = self.client.patch(f'/api/v1/suppliers/{supplier.id}/', {'status': 'Blocked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        supplier.refresh_from_db()
        self.assertEqual(supplier.status, 'Blocked')

    def test_same_gst_allowed_across_customer_and_supplier(self):
        TestDataFactory.create_customer(gst_number='33AAAFK5555P1Z9')
        response = self.client.post(
            '/api/v1/suppliers/', {'company_name': 'KPR Spinners', 'gst_number': '33AAAFK5555P1Z9'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)


class MasterDataImportTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_import_customers_csv(self):
        TestDataFactory.create_customer(name='Existing Mills', gst_number='24AABCE1111A1Z1')
        upload = csv_upload(
            'customers.csv',
            'Company Name,GST Number,City\n'
            'Existing Mills Pvt,24AABCE1111A1Z1,Ahmedabad\n'
            'New Weaves,,Surat\n'
            ',,Nowhere\n'
        )
        response = self.client.post('/api/v1/master-data/import/customers/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        results = response.data['data']
        self.assertEqual(results['inserted'], 1)
        self.assertEqual(results['updated'], 1)
        self.assertEqual(results['skipped'], 1)
        self.assertEqual(Customer.objects.get(gst_number='24AABCE1111A1Z1').company_name, 'Existing Mills Pvt')

    def test_import_suppliers_xlsx(self):
        upload = xlsx_upload(
            'suppliers.xlsx',
            ['companyName', 'gstNumber', 'city', 'status'],
            [['Vardhman Yarns', '03AAACV1234A1Z1', 'Ludhiana', 'Active'],
             ['Nahar Spinning', None, 'Ludhiana', 'Unknown']],
        )
        response = self.client.post('/api/v1/master-data/import/suppliers/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['inserted'], 2)
        self.assertEqual(Supplier.objects.get(company_name='Nahar Spinning').status, 'Active')

    def test_import_products_needs_known_category(self):
        Category.objects.create(category_name='Cotton Yarn')
        results = import_master_data('products', [
            {'Product Name': 'Cotton 20s', 'Category': 'cotton yarn'},
            {'Product Name': 'Mystery Yarn', 'Category': 'Unknown'},
        ])
        self.assertEqual(results['inserted'], 1)
        self.assertEqual(results['skipped'], 1)
        self.assertTrue(Product.objects.filter(product_name='Cotton 20s').exists())

    def test_invalid_import_type(self):
        upload = csv_upload('x.csv', 'Name\nA\n')
        response = self.client.post('/api/v1/master-data/import/warehouses/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_file(self):
        response = self.client.post('/api/v1/master-data/import/customers/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unsupported_file_type(self):
        upload = SimpleUploadedFile('customers.txt', b'hello', content_type='text/plain')
        response = self.client.post('/api/v1/master-data/import/customers/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

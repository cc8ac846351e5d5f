"""
Test suite for the catalog module
Tests: units, categories and products (codes, filters, protected deletes)
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from textile_erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from textile_erp.catalog.models import Unit, Category, Product


class CatalogModelTests(TestCase):
    def test_category_code_generated(self):
        first = Category.objects.create(category_name='Cotton Yarn')
        second = Category.objects.create(category_name='Polyester')
        self.assertEqual(first.category_code, 'CAT0001')
        self.assertEqual(second.category_code, 'CAT0002')

    def test_explicit_codes_uppercased(self):
        category = Category.objects.create(category_name='Viscose', category_code='vis01')
        product = Product.objects.create(product_name='Viscose 30s', category=category, product_code='vs30')
        self.assertEqual(category.category_code, 'VIS01')
        self.assertEqual(product.product_code, 'VS30')

    def test_product_code_generated(self):
        category = TestDataFactory.create_category()
        product = Product.objects.create(product_name='Cotton 40s Combed', category=category)
        self.assertEqual(product.product_code, 'PROD0001')
        self.assertEqual(str(product), 'PROD0001 - Cotton 40s Combed')
        self.assertEqual(product.weight, Decimal('100'))


class UnitAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_list_units(self):
        response = self.client.post('/api/v1/units/', {'name': 'Bags'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/units/')
        self.assertEqual([u['name'] for u in response.data], ['Bags'])

    def test_duplicate_unit_rejected_case_insensitive(self):
        Unit.objects.create(name='Rolls')
        response = self.client.post('/api/v1/units/', {'name': 'rolls'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CategoryAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_category(self):
        data = {'category_name': 'Blended Yarn PC', 'category_type': 'Blended Yarn', 'unit': 'Bags'}
        response = self.client.post('/api/v1/categories/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['category_code'].startswith('CAT'))
        self.assertEqual(response.data['product_count'], 0)

    def test_category_cannot_be_own_parent(self):
        category = TestDataFactory.create_category()
        response = self.client.patch(
            f'/api/v1/categories/{category.id}/', {'parent_category': category.id}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters_by_status(self):
        TestDataFactory.create_category(name='Active One')
        TestDataFactory.create_category(name='Old One', status='Inactive')
        response = self.client.get('/api/v1/categories/?status=Inactive')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['category_name'] for c in response.data], ['Old One'])

    def test_delete_category_with_products_refused(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/categories/{product.category_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Category.objects.filter(pk=product.category_id).exists())

    def test_delete_empty_category(self):
        category = TestDataFactory.create_category()
        response = self.client.delete(f'/api/v1/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class ProductAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.category = TestDataFactory.create_category(name='Cotton Yarn')

    def test_create_product(self):
        data = {
            'product_name': 'Cotton 30s Carded',
            'category': self.category.id,
            'yarn_count': '30s',
            'weight': '45.360',
        }
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category_name'], 'Cotton Yarn')
        self.assertTrue(response.data['product_code'].startswith('PROD'))

    def test_create_product_requires_category(self):
        response = self.client.post('/api/v1/products/', {'product_name': 'Orphan'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_paginated_and_searchable(self):
        TestDataFactory.create_product(name='Cotton 40s Combed', category=self.category)
        TestDataFactory.create_product(name='Polyester 150D', category=self.category)

        response = self.client.get('/api/v1/products/', {'search': 'combed cotton'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['product_name'], 'Cotton 40s Combed')

        response = self.client.get('/api/v1/products/', {'limit': 1})
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['total_pages'], 2)

    def test_update_product_status_audited(self):
        product = TestDataFactory.create_product(category=self.category)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'status': 'Discontinued'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Discontinued')

    def test_delete_product_with_lots_refused(self):
        product = TestDataFactory.create_product(category=self.category)
        TestDataFactory.create_lot(product, 10)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Product.objects.filter(pk=product.id).exists())

"""
Test suite for Inventory module
Tests: lot state, manual movements, transfers, FIFO deduction, stock alerts
"""
from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from textile_erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from textile_erp.core.exceptions import InsufficientStockError, WorkflowError
from textile_erp.inventory.models import InventoryLot, LotMovement
from textile_erp.inventory.services import (
    apply_stock_movement, deduct_fifo, fifo_lots, low_stock_products,
)


def days_ago(days):
    return timezone.now() - timedelta(days=days)


class InventoryLotModelTests(TestCase):
    def setUp(self):
        self.product = TestDataFactory.create_product()

    def test_lot_number_format(self):
        lot = TestDataFactory.create_lot(self.product, 10)
        self.assertEqual(lot.lot_number, f"{InventoryLot.lot_prefix()}0001")
        self.assertEqual(lot.available_quantity, Decimal('10'))
        self.assertEqual(lot.status, 'Active')

    def test_stock_state_follows_quantities(self):
        lot = TestDataFactory.create_lot(self.product, 10)
        lot.reserved_quantity = Decimal('10')
        lot.save()
        self.assertEqual(lot.status, 'Reserved')
        self.assertEqual(lot.available_quantity, Decimal('0'))

        lot.reserved_quantity = Decimal('4')
        lot.save()
        self.assertEqual(lot.status, 'Active')
        self.assertEqual(lot.available_quantity, Decimal('6'))

        lot.current_quantity = Decimal('0')
        lot.reserved_quantity = Decimal('0')
        lot.save()
        self.assertEqual(lot.status, 'Consumed')

    def test_total_cost(self):
        lot = TestDataFactory.create_lot(self.product, 3, unit_cost='99.99')
        self.assertEqual(lot.total_cost, Decimal('299.97'))


class StockServiceTests(TestCase):
    def setUp(self):
        self.product = TestDataFactory.create_product()

    def test_fifo_lots_oldest_first(self):
        newer = TestDataFactory.create_lot(self.product, 5, received_date=days_ago(1))
        older = TestDataFactory.create_lot(self.product, 5, received_date=days_ago(10))
        TestDataFactory.create_lot(self.product, 0, received_date=days_ago(20))
        self.assertEqual(list(fifo_lots(self.product.id)), [older, newer])

    def test_subtracting_movement_limited_to_available(self):
        lot = TestDataFactory.create_lot(self.product, 10)
        apply_stock_movement(lot.id, 'Reserved', Decimal('6'))
        with self.assertRaises(InsufficientStockError):
            apply_stock_movement(lot.id, 'Damaged', Decimal('5'))

        lot, movement = apply_stock_movement(lot.id, 'Damaged', Decimal('4'), weight=Decimal('400'), notes='Wet bags')
        self.assertEqual(lot.current_quantity, Decimal('6'))
        self.assertEqual(lot.total_weight, Decimal('600'))
        self.assertEqual(lot.status, 'Reserved')
        self.assertEqual(movement.movement_type, 'Damaged')

    def test_adding_movement(self):
        lot = TestDataFactory.create_lot(self.product, 10)
        lot, _movement = apply_stock_movement(lot.id, 'Returned', Decimal('2'), weight=Decimal('200'))
        self.assertEqual(lot.current_quantity, Decimal('12'))
        self.assertEqual(lot.total_weight, Decimal('1200'))

    def test_invalid_movement_type(self):
        lot = TestDataFactory.create_lot(self.product, 10)
        with self.assertRaises(WorkflowError):
            apply_stock_movement(lot.id, 'Received', Decimal('1'))

    def test_deduct_fifo_across_lots(self):
        old = TestDataFactory.create_lot(self.product, 5, weight=500, received_date=days_ago(10))
        new = TestDataFactory.create_lot(self.product, 10, weight=1000, received_date=days_ago(2))

        deducted, shortfall, lots_updated = deduct_fifo(
            self.product.id, Decimal('8'), Decimal('800'), 'CH2030010001', performed_by='dispatch'
        )
        self.assertEqual(deducted, Decimal('8'))
        self.assertEqual(shortfall, Decimal('0'))
        self.assertEqual([u['lot_number'] for u in lots_updated], [old.lot_number, new.lot_number])

        old.refresh_from_db()
        new.refresh_from_db()
        self.assertEqual(old.current_quantity, Decimal('0'))
        self.assertEqual(old.status, 'Consumed')
        self.assertEqual(old.total_weight, Decimal('0'))
        self.assertEqual(new.current_quantity, Decimal('7'))
        self.assertEqual(new.total_weight, Decimal('700'))
        self.assertEqual(
            LotMovement.objects.filter(movement_type='Issued', reference='CH2030010001').count(), 2
        )

    def test_deduct_fifo_skips_reserved_stock(self):
        lot = TestDataFactory.create_lot(self.product, 10)
        apply_stock_movement(lot.id, 'Reserved', Decimal('7'))

        deducted, shortfall, _lots = deduct_fifo(self.product.id, Decimal('5'), Decimal('0'), 'CH-SHORT')
        self.assertEqual(deducted, Decimal('3'))
        self.assertEqual(shortfall, Decimal('2'))
        lot.refresh_from_db()
        self.assertEqual(lot.current_quantity, Decimal('7'))

    def test_low_stock_products(self):
        low = TestDataFactory.create_product(name='Viscose 40s')
        TestDataFactory.create_lot(low, 3)
        TestDataFactory.create_lot(low, 4)
        TestDataFactory.create_lot(self.product, 100)

        rows = low_stock_products(threshold=20)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['product_name'], 'Viscose 40s')
        self.assertEqual(rows[0]['available_quantity'], Decimal('7'))
        self.assertEqual(rows[0]['lot_count'], 2)


class InventoryAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.category = TestDataFactory.create_category(name='Cotton Yarn')
        self.product = TestDataFactory.create_product(name='Cotton 20s', category=self.category)
        self.lot = TestDataFactory.create_lot(self.product, 20, unit_cost='150.00')

    def test_products_grouped_by_category(self):
        TestDataFactory.create_lot(self.product, 5)
        response = self.client.get('/api/v1/inventory/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['total_products'], 1)
        group = response.data['results'][0]
        self.assertEqual(group['category_name'], 'Cotton Yarn')
        self.assertEqual(group['products'][0]['total_current_quantity'], Decimal('25'))
        self.assertEqual(group['products'][0]['lot_count'], 2)

    def test_lot_list_filters(self):
        other = TestDataFactory.create_product(name='Polyester 75D')
        TestDataFactory.create_lot(other, 5)
        response = self.client.get('/api/v1/inventory/lots/', {'product': self.product.id})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/inventory/lots/', {'search': 'polyester'})
        self.assertEqual(response.data['count'], 1)

    def test_lot_detail_and_update(self):
        response = self.client.get(f'/api/v1/inventory/lots/{self.lot.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('recent_movements', response.data)

        response = self.client.patch(
            f'/api/v1/inventory/lots/{self.lot.id}/',
            {'quality_grade': 'B', 'current_quantity': '999'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.lot.refresh_from_db()
        self.assertEqual(self.lot.quality_grade, 'B')
        self.assertEqual(self.lot.current_quantity, Decimal('20'))

    def test_record_movement(self):
        response = self.client.post(
            f'/api/v1/inventory/lots/{self.lot.id}/movement/',
            {'movement_type': 'Issued', 'quantity': '5', 'reference': 'SAMPLE-01'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['data']['current_quantity']), Decimal('15'))
        self.assertEqual(response.data['movement']['performed_by'], self.user.username)

        response = self.client.get(f'/api/v1/inventory/lots/{self.lot.id}/movements/')
        self.assertEqual(response.data['count'], 1)

    def test_movement_exceeding_stock_refused(self):
        response = self.client.post(
            f'/api/v1/inventory/lots/{self.lot.id}/movement/',
            {'movement_type': 'Issued', 'quantity': '21'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_movement_validation(self):
        response = self.client.post(
            f'/api/v1/inventory/lots/{self.lot.id}/movement/',
            {'movement_type': 'Issued', 'quantity': '0'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_transfer_between_lots(self):
        target = TestDataFactory.create_lot(self.product, 2)
        response = self.client.post(
            f'/api/v1/inventory/lots/{self.lot.id}/transfer/',
            {'transfer_type': 'lot-to-lot', 'to_lot': target.id, 'quantity': '8'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.lot.refresh_from_db()
        target.refresh_from_db()
        self.assertEqual(self.lot.current_quantity, Decimal('12'))
        self.assertEqual(target.current_quantity, Decimal('10'))
        reference = LotMovement.objects.get(lot=self.lot).reference
        self.assertTrue(reference.startswith('TRANSFER-'))
        self.assertEqual(LotMovement.objects.get(lot=target).reference, reference)

    def test_transfer_to_same_lot_refused(self):
        response = self.client.post(
            f'/api/v1/inventory/lots/{self.lot.id}/transfer/',
            {'transfer_type': 'lot-to-lot', 'to_lot': self.lot.id, 'quantity': '1'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_relocate_lot(self):
        warehouse = TestDataFactory.create_warehouse(name='Kadodara Godown')
        response = self.client.post(
            f'/api/v1/inventory/lots/{self.lot.id}/transfer/',
            {'transfer_type': 'location-change', 'warehouse': warehouse.id},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['warehouse_name'], 'Kadodara Godown')
        self.assertEqual(self.lot.movements.get().quantity, Decimal('0'))

    def test_relocate_requires_warehouse(self):
        response = self.client.post(
            f'/api/v1/inventory/lots/{self.lot.id}/transfer/', {'transfer_type': 'location-change'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_low_stock_alerts(self):
        response = self.client.get('/api/v1/inventory/alerts/low-stock/', {'threshold': '25'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/inventory/alerts/low-stock/', {'threshold': '10'})
        self.assertEqual(response.data['count'], 0)

        response = self.client.get('/api/v1/inventory/alerts/low-stock/', {'threshold': 'lots'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_expiry_alerts(self):
        today = timezone.localdate()
        self.lot.expiry_date = today + timedelta(days=5)
        self.lot.save()
        later = TestDataFactory.create_lot(self.product, 5)
        later.expiry_date = today + timedelta(days=90)
        later.save()

        response = self.client.get('/api/v1/inventory/alerts/expiry/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['lot_number'], self.lot.lot_number)

        response = self.client.get('/api/v1/inventory/alerts/expiry/', {'days': 120})
        self.assertEqual(response.data['count'], 2)

    def test_stats(self):
        response = self.client.get('/api/v1/inventory/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['overview']['total_lots'], 1)
        self.assertEqual(response.data['overview']['total_value'], Decimal('3000'))
        self.assertEqual(response.data['category_breakdown'][0]['category'], 'Cotton Yarn')

"""
Comprehensive test suite for Sales module
Tests: Sales orders, FIFO reservation, shipping, delivery challans with partial
dispatch, stock deduction, PDFs and status recalculation
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from textile_erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from textile_erp.inventory.models import InventoryLot, LotMovement
from textile_erp.sales.models import (
    SalesOrder, InventoryAllocation, WorkflowHistory, SalesChallan, SalesChallanItem,
)
from textile_erp.sales.services import deduct_completed_item


def days_ago(days):
    return timezone.now() - timedelta(days=days)


class SalesOrderAPITests(TestCase):
    """Test sales order CRUD and status changes"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Raghuvir Textiles', city='Surat')
        self.product = TestDataFactory.create_product(name='Cotton 40s Combed')

    def _so_payload(self, **overrides):
        data = {
            'customer': self.customer.id,
            'expected_delivery_date': '2030-03-01',
            'items': [
                {'product': self.product.id, 'quantity': '12', 'weight': '1200', 'unit_price': '210.00'},
            ],
        }
        data.update(overrides)
        return data

    def test_create_sales_order(self):
        response = self.client.post('/api/v1/sales-orders/', self._so_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['so_number'], 'PKRK/SO/01')
        self.assertEqual(response.data['customer_name'], 'Raghuvir Textiles')
        self.assertEqual(response.data['shipping_city'], 'Surat')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('2520.00'))
        self.assertEqual(response.data['workflow_history'][0]['to_status'], 'Draft')
        self.assertEqual(response.data['workflow_history'][0]['changed_by'], self.user.username)

    def test_create_requires_items(self):
        response = self.client.post('/api/v1/sales-orders/', self._so_payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(SalesOrder.objects.count(), 0)

    def test_create_rejects_inactive_customer(self):
        inactive = TestDataFactory.create_customer(status='Inactive')
        response = self.client.post('/api/v1/sales-orders/', self._so_payload(customer=inactive.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_cannot_start_delivered(self):
        response = self.client.post('/api/v1/sales-orders/', self._so_payload(status='Delivered'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_search_and_by_customer(self):
        TestDataFactory.create_sales_order(user=self.user, customer=self.customer)
        TestDataFactory.create_sales_order(user=self.user)
        response = self.client.get('/api/v1/sales-orders/', {'search': 'Raghuvir'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/sales-orders/customer/{self.customer.id}/')
        self.assertEqual(response.data['count'], 1)

    def test_status_change_recorded(self):
        sales_order = TestDataFactory.create_sales_order(user=self.user, customer=self.customer)
        response = self.client.patch(
            f'/api/v1/sales-orders/{sales_order.id}/status/', {'status': 'Confirmed'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'Confirmed')
        history = WorkflowHistory.objects.get(sales_order=sales_order)
        self.assertEqual((history.from_status, history.to_status), ('Draft', 'Confirmed'))

    def test_status_endpoint_refuses_cancel(self):
        sales_order = TestDataFactory.create_sales_order(user=self.user, customer=self.customer)
        response = self.client.patch(
            f'/api/v1/sales-orders/{sales_order.id}/status/', {'status': 'Cancelled'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_locked_order_cannot_be_modified(self):
        sales_order = TestDataFactory.create_sales_order(user=self.user, customer=self.customer, status='Shipped')
        response = self.client.patch(f'/api/v1/sales-orders/{sales_order.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_only_draft(self):
        draft = TestDataFactory.create_sales_order(user=self.user, customer=self.customer)
        confirmed = TestDataFactory.create_sales_order(user=self.user, customer=self.customer, status='Confirmed')
        response = self.client.delete(f'/api/v1/sales-orders/{confirmed.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/sales-orders/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_stats(self):
        TestDataFactory.create_sales_order(
            user=self.user, customer=self.customer, lines=[(self.product, 2, 200, '100')], status='Confirmed'
        )
        TestDataFactory.create_sales_order(
            user=self.user, customer=self.customer, lines=[(self.product, 5, 500, '100')], status='Cancelled'
        )
        response = self.client.get('/api/v1/sales-orders/stats/')
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['total_revenue'], Decimal('200.00'))
        self.assertEqual(response.data['pending_deliveries'], 1)


class ReservationWorkflowTests(TestCase):
    """Test FIFO reservation, shipping, delivery and cancellation"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()
        self.old_lot = TestDataFactory.create_lot(self.product, 5, received_date=days_ago(10))
        self.new_lot = TestDataFactory.create_lot(self.product, 10, received_date=days_ago(1))

    def _order(self, quantity, status='Confirmed'):
        return TestDataFactory.create_sales_order(
            user=self.user, lines=[(self.product, quantity, quantity * 100, '50')], status=status
        )

    def test_reserve_oldest_lots_first(self):
        sales_order = self._order(8)
        response = self.client.post(f'/api/v1/sales-orders/{sales_order.id}/reserve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        result = response.data['data']['reservation_results'][0]
        self.assertEqual(result['status'], 'Fully Reserved')
        self.assertEqual(result['reserved'], Decimal('8'))
        self.assertEqual(response.data['data']['sales_order']['status'], 'Processing')

        allocations = InventoryAllocation.objects.order_by('id')
        self.assertEqual([(a.lot_id, a.allocated_quantity) for a in allocations],
                         [(self.old_lot.id, Decimal('5')), (self.new_lot.id, Decimal('3'))])

        self.old_lot.refresh_from_db()
        self.new_lot.refresh_from_db()
        self.assertEqual(self.old_lot.status, 'Reserved')
        self.assertEqual(self.new_lot.available_quantity, Decimal('7'))

    def test_partial_reservation_keeps_order_confirmed(self):
        sales_order = self._order(20)
        response = self.client.post(f'/api/v1/sales-orders/{sales_order.id}/reserve/', {}, format='json')
        result = response.data['data']['reservation_results'][0]
        self.assertEqual(result['status'], 'Partially Reserved')
        self.assertEqual(result['shortfall'], Decimal('5'))
        sales_order.refresh_from_db()
        self.assertEqual(sales_order.status, 'Confirmed')

    def test_reserve_requires_confirmed(self):
        sales_order = self._order(2, status='Draft')
        response = self.client.post(f'/api/v1/sales-orders/{sales_order.id}/reserve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_ship_and_deliver(self):
        sales_order = self._order(8)
        self.client.post(f'/api/v1/sales-orders/{sales_order.id}/reserve/', {}, format='json')

        response = self.client.post(
            f'/api/v1/sales-orders/{sales_order.id}/ship/',
            {'tracking_number': 'LR-5521', 'courier_company': 'VRL Logistics'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'Shipped')
        self.assertEqual(response.data['data']['tracking_number'], 'LR-5521')

        self.old_lot.refresh_from_db()
        self.new_lot.refresh_from_db()
        self.assertEqual(self.old_lot.status, 'Consumed')
        self.assertEqual(self.new_lot.current_quantity, Decimal('7'))
        self.assertEqual(self.new_lot.reserved_quantity, Decimal('0'))
        self.assertEqual(LotMovement.objects.filter(movement_type='Issued').count(), 2)

        response = self.client.post(
            f'/api/v1/sales-orders/{sales_order.id}/deliver/', {'actual_delivery_date': '2030-02-01'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sales_order.refresh_from_db()
        self.assertEqual(sales_order.status, 'Delivered')
        self.assertEqual(str(sales_order.actual_delivery_date), '2030-02-01')
        self.assertEqual(set(InventoryAllocation.objects.values_list('status', flat=True)), {'Delivered'})

    def test_ship_requires_processing(self):
        sales_order = self._order(2)
        response = self.client.post(f'/api/v1/sales-orders/{sales_order.id}/ship/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deliver_validation(self):
        sales_order = self._order(2, status='Shipped')
        response = self.client.post(
            f'/api/v1/sales-orders/{sales_order.id}/deliver/', {'actual_delivery_date': '01/02/2030'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        confirmed = self._order(2)
        response = self.client.post(f'/api/v1/sales-orders/{confirmed.id}/deliver/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_releases_reservations(self):
        sales_order = self._order(8)
        self.client.post(f'/api/v1/sales-orders/{sales_order.id}/reserve/', {}, format='json')

        response = self.client.post(
            f'/api/v1/sales-orders/{sales_order.id}/cancel/', {'reason': 'Customer postponed'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['cancellation_reason'], 'Customer postponed')

        self.old_lot.refresh_from_db()
        self.new_lot.refresh_from_db()
        self.assertEqual(self.old_lot.reserved_quantity, Decimal('0'))
        self.assertEqual(self.old_lot.status, 'Active')
        self.assertEqual(self.new_lot.available_quantity, Decimal('10'))
        self.assertEqual(set(InventoryAllocation.objects.values_list('status', flat=True)), {'Released'})

        response = self.client.post(f'/api/v1/sales-orders/{sales_order.id}/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_cannot_cancel_reserved_order(self):
        sales_order = self._order(4)
        self.client.post(f'/api/v1/sales-orders/{sales_order.id}/reserve/', {}, format='json')

        response = self.client.patch(
            f'/api/v1/sales-orders/{sales_order.id}/', {'status': 'Cancelled'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data)

        sales_order.refresh_from_db()
        self.assertEqual(sales_order.status, 'Processing')
        self.old_lot.refresh_from_db()
        self.assertEqual(self.old_lot.reserved_quantity, Decimal('4'))
        self.assertEqual(set(InventoryAllocation.objects.values_list('status', flat=True)), {'Reserved'})


class ChallanWorkflowTests(TestCase):
    """Test delivery challans, partial dispatch and FIFO stock deduction"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.warehouse = TestDataFactory.create_warehouse(name='Ring Road Godown')
        self.product = TestDataFactory.create_product(name='Polyester 150D')
        self.old_lot = TestDataFactory.create_lot(self.product, 6, received_date=days_ago(10))
        self.new_lot = TestDataFactory.create_lot(self.product, 10, received_date=days_ago(1))
        self.sales_order = TestDataFactory.create_sales_order(
            user=self.user, lines=[(self.product, 10, 1000, '180')], status='Confirmed'
        )
        self.so_item = self.sales_order.items.get()

    def _dispatch(self, quantity, **extra):
        item = {'sales_order_item': self.so_item.id, 'dispatch_quantity': str(quantity)}
        item.update(extra)
        data = {
            'sales_order': self.sales_order.id,
            'warehouse': self.warehouse.id,
            'transport_name': 'Shree Maruti Courier',
            'vehicle_number': 'GJ05XY4321',
            'items': [item],
        }
        return self.client.post('/api/v1/sales-challans/', data, format='json')

    def test_partial_then_full_dispatch(self):
        first = self._dispatch(4)
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['status'], 'Prepared')
        self.assertEqual(first.data['stock_updates'], [])
        self.assertEqual(first.data['items'][0]['weight'], '400.000')

        self.sales_order.refresh_from_db()
        self.assertEqual(self.sales_order.status, 'Processing')
        self.so_item.refresh_from_db()
        self.assertEqual(self.so_item.delivered_quantity, Decimal('4'))
        self.assertEqual(LotMovement.objects.count(), 0)

        second = self._dispatch(6)
        self.assertEqual(second.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(second.data['stock_updates']), 1)
        update = second.data['stock_updates'][0]
        self.assertEqual(update['deducted'], Decimal('10'))
        self.assertEqual(update['shortfall'], Decimal('0'))
        expected_reference = ', '.join(sorted([first.data['challan_number'], second.data['challan_number']]))
        self.assertEqual(update['reference'], expected_reference)

        self.sales_order.refresh_from_db()
        self.assertEqual(self.sales_order.status, 'Delivered')
        self.assertIsNotNone(self.sales_order.actual_delivery_date)

        self.old_lot.refresh_from_db()
        self.new_lot.refresh_from_db()
        self.assertEqual(self.old_lot.current_quantity, Decimal('0'))
        self.assertEqual(self.old_lot.status, 'Consumed')
        self.assertEqual(self.new_lot.current_quantity, Decimal('6'))

    def test_short_dispatch_marked_complete(self):
        response = self._dispatch(7, mark_as_complete=True)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stock_updates'][0]['deducted'], Decimal('7'))
        self.sales_order.refresh_from_db()
        self.assertEqual(self.sales_order.status, 'Delivered')

    def _stock_left(self):
        return sum(InventoryLot.objects.filter(product=self.product).values_list('current_quantity', flat=True))

    def test_completed_line_refuses_further_dispatch(self):
        other_product = TestDataFactory.create_product(name='Viscose 2/30')
        sales_order = TestDataFactory.create_sales_order(
            user=self.user,
            lines=[(self.product, 10, 1000, '180'), (other_product, 5, 500, '120')],
            status='Confirmed'
        )
        line = sales_order.items.get(product=self.product)
        data = {
            'sales_order': sales_order.id,
            'warehouse': self.warehouse.id,
            'items': [{'sales_order_item': line.id, 'dispatch_quantity': '7', 'mark_as_complete': True}],
        }
        response = self.client.post('/api/v1/sales-challans/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        sales_order.refresh_from_db()
        self.assertEqual(sales_order.status, 'Processing')
        self.assertEqual(self._stock_left(), Decimal('9'))

        data['items'] = [{'sales_order_item': line.id, 'dispatch_quantity': '3'}]
        response = self.client.post('/api/v1/sales-challans/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already complete', response.data['error'])
        self.assertEqual(self._stock_left(), Decimal('9'))
        self.assertEqual(SalesChallan.objects.filter(sales_order=sales_order).count(), 1)

    def test_recompleting_line_after_challan_delete_deducts_difference(self):
        first = self._dispatch(7, mark_as_complete=True)
        self.assertEqual(self._stock_left(), Decimal('9'))
        response = self.client.delete(f"/api/v1/sales-challans/{first.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        second = self._dispatch(10)
        self.assertEqual(second.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.data['stock_updates'][0]['deducted'], Decimal('3'))
        self.assertEqual(self._stock_left(), Decimal('6'))
        self.so_item.refresh_from_db()
        self.assertEqual(self.so_item.deducted_quantity, Decimal('10'))

    def test_completed_line_deducted_once(self):
        self._dispatch(10)
        self.so_item.refresh_from_db()
        issued = LotMovement.objects.filter(movement_type='Issued').count()

        with self.assertLogs('textile_erp.sales.services', level='INFO') as logs:
            self.assertIsNone(deduct_completed_item(self.so_item, self.sales_order, 'dispatch'))
        self.assertIn('already deducted', logs.output[0])
        self.assertEqual(LotMovement.objects.filter(movement_type='Issued').count(), issued)
        self.assertEqual(self._stock_left(), Decimal('6'))

    def test_dispatch_shortfall_logged_not_raised(self):
        product = TestDataFactory.create_product(name='Nylon 40D')
        lot = TestDataFactory.create_lot(product, 3)
        sales_order = TestDataFactory.create_sales_order(
            user=self.user, lines=[(product, 5, 500, '90')], status='Confirmed'
        )
        data = {
            'sales_order': sales_order.id,
            'warehouse': self.warehouse.id,
            'items': [{'sales_order_item': sales_order.items.get().id, 'dispatch_quantity': '5'}],
        }
        with self.assertLogs('textile_erp.inventory.services', level='WARNING') as logs:
            response = self.client.post('/api/v1/sales-challans/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(any('Insufficient stock' in line for line in logs.output))
        update = response.data['stock_updates'][0]
        self.assertEqual(update['deducted'], Decimal('3'))
        self.assertEqual(update['shortfall'], Decimal('2'))
        lot.refresh_from_db()
        self.assertEqual(lot.status, 'Consumed')

    def test_over_dispatch_rejected(self):
        self._dispatch(4)
        response = self._dispatch(7)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(SalesChallan.objects.count(), 1)

    def test_zero_dispatch_rejected(self):
        response = self._dispatch(0)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_warehouse_required(self):
        data = {
            'sales_order': self.sales_order.id,
            'items': [{'sales_order_item': self.so_item.id, 'dispatch_quantity': '1'}],
        }
        response = self.client.post('/api/v1/sales-challans/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_item_from_other_order_rejected(self):
        other = TestDataFactory.create_sales_order(
            user=self.user, lines=[(self.product, 1, 100, '1')], status='Confirmed'
        )
        response = self._dispatch(1, sales_order_item=other.items.get().id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_no_challan_for_delivered_order(self):
        self.sales_order.status = 'Delivered'
        self.sales_order.save()
        response = self._dispatch(1)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_challan_status_delivered_closes_order(self):
        challan_id = self._dispatch(4).data['id']
        response = self.client.patch(
            f'/api/v1/sales-challans/{challan_id}/status/', {'status': 'Dispatched'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['items'][0]['item_status'], 'Dispatched')

        response = self.client.patch(
            f'/api/v1/sales-challans/{challan_id}/status/', {'status': 'Delivered'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']['status_history']), 3)
        self.sales_order.refresh_from_db()
        self.assertEqual(self.sales_order.status, 'Delivered')

    def test_invalid_challan_status(self):
        challan_id = self._dispatch(4).data['id']
        response = self.client.patch(
            f'/api/v1/sales-challans/{challan_id}/status/', {'status': 'Lost'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_challan_only_before_dispatch(self):
        challan_id = self._dispatch(4).data['id']
        response = self.client.delete(f'/api/v1/sales-challans/{challan_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.so_item.refresh_from_db()
        self.assertEqual(self.so_item.delivered_quantity, Decimal('0'))

        challan_id = self._dispatch(4).data['id']
        self.client.patch(f'/api/v1/sales-challans/{challan_id}/status/', {'status': 'Dispatched'}, format='json')
        response = self.client.delete(f'/api/v1/sales-challans/{challan_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_order_with_challans_cannot_be_deleted(self):
        self._dispatch(4)
        self.sales_order.status = 'Draft'
        self.sales_order.save()
        response = self.client.delete(f'/api/v1/sales-orders/{self.sales_order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_delivered_challan_refused(self):
        challan_id = self._dispatch(4).data['id']
        self.client.patch(f'/api/v1/sales-challans/{challan_id}/status/', {'status': 'Delivered'}, format='json')
        response = self.client.patch(f'/api/v1/sales-challans/{challan_id}/', {'lr_number': 'LR1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_track_challan(self):
        challan_number = self._dispatch(4).data['challan_number']
        response = self.client.get(f'/api/v1/sales-challans/track/{challan_number.lower()}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['challan_number'], challan_number)
        self.assertEqual(response.data['transport_info']['vehicle_number'], 'GJ05XY4321')

        response = self.client.get('/api/v1/sales-challans/track/CH000000000/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_dispatched_quantities_and_by_so(self):
        self._dispatch(3)
        self._dispatch(2)
        response = self.client.get(f'/api/v1/sales-challans/dispatched/{self.sales_order.id}/')
        self.assertEqual(response.data['items'][0]['total_dispatched'], Decimal('5'))

        response = self.client.get(f'/api/v1/sales-challans/by-so/{self.sales_order.id}/')
        self.assertEqual(len(response.data), 2)

    def test_challan_stats(self):
        self._dispatch(3)
        response = self.client.get('/api/v1/sales-challans/stats/')
        self.assertEqual(response.data['total_challans'], 1)
        self.assertEqual(response.data['partial_orders'], 1)
        self.assertEqual(response.data['completed_orders'], 0)

    def test_challan_pdf(self):
        challan_id = self._dispatch(4).data['id']
        response = self.client.get(f'/api/v1/sales-challans/{challan_id}/pdf/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_consolidated_pdf(self):
        response = self.client.get(f'/api/v1/sales-orders/{self.sales_order.id}/challans-pdf/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self._dispatch(4)
        self._dispatch(2)
        response = self.client.get(f'/api/v1/sales-orders/{self.sales_order.id}/challans-pdf/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.content.startswith(b'%PDF'))


class RecalculateStatusTests(TestCase):
    """Orders whose challans were recorded without the dispatch roll-up"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()
        self.sales_order = TestDataFactory.create_sales_order(
            user=self.user, lines=[(self.product, 5, 500, '10')], status='Confirmed'
        )
        so_item = self.sales_order.items.get()
        challan = SalesChallan.objects.create(
            sales_order=self.sales_order,
            customer=self.sales_order.customer,
            warehouse=TestDataFactory.create_warehouse(),
        )
        SalesChallanItem.objects.create(
            challan=challan,
            sales_order_item=so_item,
            product=self.product,
            product_name=so_item.product_name,
            ordered_quantity=so_item.quantity,
            dispatch_quantity=Decimal('5'),
            weight=Decimal('500'),
        )

    def test_recalculate_endpoint(self):
        response = self.client.post('/api/v1/sales-orders/recalculate-statuses/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 1)
        self.sales_order.refresh_from_db()
        self.assertEqual(self.sales_order.status, 'Delivered')

        response = self.client.post('/api/v1/sales-orders/recalculate-statuses/', {}, format='json')
        self.assertEqual(response.data['updated'], 0)

    def test_management_command(self):
        out = StringIO()
        call_command('recalculate_so_statuses', stdout=out)
        self.assertIn('Status changed on 1 of 1 sales orders', out.getvalue())
        self.sales_order.refresh_from_db()
        self.assertEqual(self.sales_order.status, 'Delivered')

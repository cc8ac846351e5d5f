"""
Comprehensive test suite for Purchasing module
Tests: Purchase orders, goods receipts, partial receipts, lot creation and edge cases
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from textile_erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from textile_erp.core.exceptions import WorkflowError
from textile_erp.inventory.models import InventoryLot
from textile_erp.purchasing.models import PurchaseOrder, GoodsReceiptNote
from textile_erp.purchasing.services import create_grn


class PurchaseOrderModelTests(TestCase):
    """Test PurchaseOrder numbering and totals"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(name='Cotton 30s Combed')

    def test_po_numbers_are_sequential(self):
        first = TestDataFactory.create_purchase_order(user=self.user)
        second = TestDataFactory.create_purchase_order(user=self.user)
        self.assertEqual(first.po_number, 'PKRK/PO/1')
        self.assertEqual(second.po_number, 'PKRK/PO/2')

    def test_total_amount_from_lines(self):
        purchase_order = TestDataFactory.create_purchase_order(
            user=self.user, lines=[(self.product, 10, 1000, '250.50'), (self.product, 4, 400, '100')]
        )
        self.assertEqual(purchase_order.total_amount, Decimal('2905.00'))
        self.assertEqual(purchase_order.get_total_quantity(), Decimal('14'))

    def test_item_pending_quantity_on_create(self):
        purchase_order = TestDataFactory.create_purchase_order(
            user=self.user, lines=[(self.product, 10, 1000, '100')]
        )
        item = purchase_order.items.get()
        self.assertEqual(item.pending_quantity, Decimal('10'))
        self.assertEqual(item.receipt_status, 'Pending')
        self.assertEqual(item.product_name, 'Cotton 30s Combed')


class PurchaseOrderAPITests(TestCase):
    """Test purchase order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(name='Coimbatore Spinners')
        self.product = TestDataFactory.create_product()

    def _po_payload(self, **overrides):
        data = {
            'supplier': self.supplier.id,
            'expected_delivery_date': '2030-01-15',
            'items': [
                {'product': self.product.id, 'quantity': '20', 'weight': '2000', 'unit_price': '150.00'},
            ],
        }
        data.update(overrides)
        return data

    def test_create_purchase_order(self):
        response = self.client.post('/api/v1/purchase-orders/', self._po_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'Draft')
        self.assertEqual(response.data['supplier_name'], 'Coimbatore Spinners')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('3000.00'))
        self.assertEqual(len(response.data['items']), 1)

    def test_create_requires_items(self):
        response = self.client.post('/api/v1/purchase-orders/', self._po_payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(PurchaseOrder.objects.count(), 0)

    def test_create_rejects_unknown_product(self):
        payload = self._po_payload(items=[{'product': 99999, 'quantity': '5'}])
        response = self.client.post('/api/v1/purchase-orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_rejects_blocked_supplier(self):
        blocked = TestDataFactory.create_supplier(status='Blocked')
        response = self.client.post('/api/v1/purchase-orders/', self._po_payload(supplier=blocked.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filter_by_status(self):
        TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier)
        TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier, status='Sent')
        response = self.client.get('/api/v1/purchase-orders/', {'status': 'Sent'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_draft_items_can_be_replaced(self):
        purchase_order = TestDataFactory.create_purchase_order(
            user=self.user, supplier=self.supplier, lines=[(self.product, 5, 500, '10')]
        )
        payload = {'items': [{'product': self.product.id, 'quantity': '8', 'unit_price': '10'}]}
        response = self.client.patch(f'/api/v1/purchase-orders/{purchase_order.id}/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('80.00'))
        self.assertEqual(response.data['revision_number'], 2)

    def test_sent_po_only_notes_and_status_editable(self):
        purchase_order = TestDataFactory.create_purchase_order(
            user=self.user, supplier=self.supplier, lines=[(self.product, 5, 500, '10')], status='Sent'
        )
        response = self.client.patch(
            f'/api/v1/purchase-orders/{purchase_order.id}/', {'notes': 'Call before dispatch'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.patch(
            f'/api/v1/purchase-orders/{purchase_order.id}/', {'expected_delivery_date': '2031-01-01'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancelled_po_cannot_be_modified(self):
        purchase_order = TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier, status='Cancelled')
        response = self.client.patch(f'/api/v1/purchase-orders/{purchase_order.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_transition_records_dates(self):
        purchase_order = TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier)
        response = self.client.patch(
            f'/api/v1/purchase-orders/{purchase_order.id}/status/', {'status': 'Sent'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        purchase_order.refresh_from_db()
        self.assertEqual(purchase_order.status, 'Sent')
        self.assertIsNotNone(purchase_order.sent_date)

        response = self.client.patch(
            f'/api/v1/purchase-orders/{purchase_order.id}/status/', {'status': 'Approved'}, format='json'
        )
        purchase_order.refresh_from_db()
        self.assertEqual(purchase_order.approval_status, 'Approved')
        self.assertEqual(purchase_order.approved_by, self.user.username)

    def test_status_endpoint_rejects_cancel_and_unknown(self):
        purchase_order = TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier)
        for value in ('Cancelled', 'Shipped'):
            response = self.client.patch(
                f'/api/v1/purchase-orders/{purchase_order.id}/status/', {'status': value}, format='json'
            )
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_cannot_cancel(self):
        purchase_order = TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier, status='Sent')
        response = self.client.patch(
            f'/api/v1/purchase-orders/{purchase_order.id}/', {'status': 'Cancelled'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data)
        purchase_order.refresh_from_db()
        self.assertEqual(purchase_order.status, 'Sent')
        self.assertIsNone(purchase_order.cancelled_date)

    def test_cancel_purchase_order(self):
        purchase_order = TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier, status='Sent')
        response = self.client.post(
            f'/api/v1/purchase-orders/{purchase_order.id}/cancel/', {'reason': 'Rate revised'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        purchase_order.refresh_from_db()
        self.assertEqual(purchase_order.status, 'Cancelled')
        self.assertEqual(purchase_order.cancellation_reason, 'Rate revised')

        response = self.client.post(f'/api/v1/purchase-orders/{purchase_order.id}/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_draft_can_be_deleted(self):
        draft = TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier)
        sent = TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier, status='Sent')

        response = self.client.delete(f'/api/v1/purchase-orders/{sent.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f'/api/v1/purchase-orders/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_stats(self):
        TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier)
        overdue = TestDataFactory.create_purchase_order(user=self.user, supplier=self.supplier, status='Sent')
        overdue.expected_delivery_date = '2020-01-01'
        overdue.save()

        response = self.client.get('/api/v1/purchase-orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_pos'], 2)
        self.assertEqual(response.data['overdue_pos'], 1)
        self.assertEqual(response.data['pending_approvals'], 1)
        self.assertEqual(response.data['status_breakdown']['Draft'], 1)


class GoodsReceiptTests(TestCase):
    """Test goods receipts and the lots they create"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.warehouse = TestDataFactory.create_warehouse(name='Main Godown')
        self.product = TestDataFactory.create_product(name='Polyester 150D')
        self.purchase_order = TestDataFactory.create_purchase_order(
            user=self.user, lines=[(self.product, 10, 1000, '120')], status='Approved'
        )
        self.po_item = self.purchase_order.items.get()

    def _receive(self, quantity, **extra):
        item = {'purchase_order_item': self.po_item.id, 'received_quantity': str(quantity)}
        item.update(extra)
        data = {'purchase_order': self.purchase_order.id, 'warehouse': self.warehouse.id, 'items': [item]}
        return self.client.post('/api/v1/grns/', data, format='json')

    def test_full_receipt_creates_lot(self):
        response = self._receive(10)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'Completed')
        self.assertEqual(response.data['receipt_status'], 'Complete')
        self.assertEqual(response.data['grn_number'], 'PKRK/GRN/01')
        self.assertEqual(len(response.data['lots_created']), 1)

        lot = InventoryLot.objects.get()
        self.assertEqual(lot.current_quantity, Decimal('10'))
        self.assertEqual(lot.total_weight, Decimal('1000'))
        self.assertEqual(lot.warehouse, self.warehouse)
        self.assertEqual(lot.movements.get().movement_type, 'Received')

        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.status, 'Fully_Received')
        self.assertEqual(self.purchase_order.completion_percentage, 100)

    def test_partial_receipts_create_lots_once_line_complete(self):
        first = self._receive(6)
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['status'], 'Received')
        self.assertEqual(first.data['receipt_status'], 'Partial')
        self.assertEqual(first.data['approval_status'], 'Pending')
        self.assertEqual(first.data['lots_created'], [])
        self.assertEqual(InventoryLot.objects.count(), 0)

        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.status, 'Partially_Received')
        self.assertEqual(self.purchase_order.completion_percentage, 60)

        second = self._receive(4)
        self.assertEqual(second.data['receipt_status'], 'Complete')
        self.assertEqual(len(second.data['lots_created']), 2)
        quantities = sorted(InventoryLot.objects.values_list('current_quantity', flat=True))
        self.assertEqual(quantities, [Decimal('4'), Decimal('6')])

        earlier = GoodsReceiptNote.objects.get(pk=first.data['id'])
        self.assertEqual(earlier.status, 'Completed')
        self.assertEqual(earlier.approval_status, 'Approved')

    def test_short_receipt_marked_complete(self):
        response = self._receive(8, mark_as_complete=True, completion_reason='Two bags damaged in transit')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['receipt_status'], 'Complete')
        self.assertEqual(InventoryLot.objects.get().current_quantity, Decimal('8'))
        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.status, 'Fully_Received')

    def test_weight_prorated_when_missing(self):
        self._receive(6)
        grn = GoodsReceiptNote.objects.get()
        self.assertEqual(grn.items.get().received_weight, Decimal('600.000'))

    def test_receipt_requires_items(self):
        data = {'purchase_order': self.purchase_order.id, 'items': []}
        response = self.client.post('/api/v1/grns/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_receipt_against_cancelled_po_refused(self):
        self.purchase_order.status = 'Cancelled'
        self.purchase_order.save()
        with self.assertRaises(WorkflowError):
            create_grn({'purchase_order': self.purchase_order}, [
                {'purchase_order_item': self.po_item.id, 'received_quantity': '1'}
            ], user=self.user)

    def test_invalid_po_item_reference(self):
        other = TestDataFactory.create_purchase_order(user=self.user, lines=[(self.product, 1, 100, '1')])
        response = self.client.post('/api/v1/grns/', {
            'purchase_order': self.purchase_order.id,
            'items': [{'purchase_order_item': other.items.get().id, 'received_quantity': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve_creates_lots_for_quality_approved_items(self):
        response = self._receive(5, quality_status='Approved', accepted_quantity='4')
        grn_id = response.data['id']

        response = self.client.post(f'/api/v1/grns/{grn_id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['inventory_lots'], 1)
        self.assertEqual(InventoryLot.objects.get().current_quantity, Decimal('4'))

        # Approving again does not duplicate lots
        self.client.post(f'/api/v1/grns/{grn_id}/approve/', {}, format='json')
        self.assertEqual(InventoryLot.objects.count(), 1)

    def test_rejected_grn_cannot_be_approved(self):
        grn_id = self._receive(5).data['id']
        self.client.patch(f'/api/v1/grns/{grn_id}/status/', {'status': 'Rejected'}, format='json')
        response = self.client.post(f'/api/v1/grns/{grn_id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_item_complete(self):
        grn_id = self._receive(7).data['id']
        grn = GoodsReceiptNote.objects.get(pk=grn_id)
        item = grn.items.get()

        response = self.client.post(
            f'/api/v1/grns/{grn_id}/mark-item-complete/', {'item_id': item.id, 'reason': 'Supplier short'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['receipt_status'], 'Complete')
        self.po_item.refresh_from_db()
        self.assertTrue(self.po_item.manually_completed)
        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.status, 'Fully_Received')

        response = self.client.post(f'/api/v1/grns/{grn_id}/approve/', {}, format='json')
        self.assertEqual(response.data['data']['inventory_lots'], 1)

    def test_mark_item_complete_requires_item(self):
        grn_id = self._receive(7).data['id']
        response = self.client.post(f'/api/v1/grns/{grn_id}/mark-item-complete/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(f'/api/v1/grns/{grn_id}/mark-item-complete/', {'item_id': 99999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_completed_grn_only_notes_editable(self):
        grn_id = self._receive(10).data['id']
        response = self.client.patch(f'/api/v1/grns/{grn_id}/', {'notes': 'Checked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.patch(f'/api/v1/grns/{grn_id}/', {'vehicle_number': 'GJ05AB1234'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_draft_grn_can_be_deleted(self):
        grn_id = self._receive(5).data['id']
        response = self.client.delete(f'/api/v1/grns/{grn_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_draft_grn_reverts_po(self):
        grn_id = self._receive(0).data['id']
        self.assertEqual(GoodsReceiptNote.objects.get(pk=grn_id).status, 'Draft')
        response = self.client.delete(f'/api/v1/grns/{grn_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.total_grns, 0)

    def test_grns_by_po_and_stats(self):
        self._receive(3)
        self._receive(7)
        response = self.client.get(f'/api/v1/grns/by-po/{self.purchase_order.id}/')
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/grns/stats/')
        self.assertEqual(response.data['total_grns'], 2)
        self.assertEqual(response.data['completed'], 1)

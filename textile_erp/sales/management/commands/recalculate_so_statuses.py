"""
Management command to recompute sales order dispatch state from their challans
"""
from django.core.management.base import BaseCommand

from textile_erp.sales.models import SalesOrder
from textile_erp.sales.services import recalculate_statuses


class Command(BaseCommand):
    help = "Recalculates item dispatch quantities and status of every sales order that has challans"

    def handle(self, *args, **options):
        total = SalesOrder.objects.filter(challans__isnull=False).distinct().count()

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("RECALCULATING SALES ORDER STATUSES"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"Orders with challans: {total}")

        updated = recalculate_statuses()

        self.stdout.write(self.style.SUCCESS(f"✓ Status changed on {updated} of {total} sales orders"))

"""
Management command to import master data from an Excel or CSV file
"""
import os

from django.core.management.base import BaseCommand, CommandError

from textile_erp.parties.importers import IMPORT_TYPES, ImportFileError, import_master_data, read_rows


class Command(BaseCommand):
    help = "Imports customers, suppliers, categories or products from an .xlsx or .csv file"

    def add_arguments(self, parser):
        parser.add_argument('import_type', choices=IMPORT_TYPES, help='Kind of master data in the file')
        parser.add_argument('file_path', help='Path to the .xlsx or .csv file')

    def handle(self, *args, **options):
        import_type = options['import_type']
        file_path = os.path.abspath(options['file_path'])

        if not os.path.exists(file_path):
            raise CommandError(f"File not found at {file_path}")

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS(f"IMPORTING {import_type.upper()}"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"File: {file_path}")

        with open(file_path, 'rb') as f:
            try:
                rows = read_rows(f)
            except ImportFileError as e:
                raise CommandError(str(e))

        if not rows:
            self.stdout.write(self.style.WARNING("File is empty, nothing imported."))
            return

        results = import_master_data(import_type, rows)

        for error in results['errors']:
            self.stdout.write(self.style.WARNING(f"  ⊘ {error}"))

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"Inserted: {results['inserted']}")
        self.stdout.write(f"Updated: {results['updated']}")
        self.stdout.write(f"Skipped: {results['skipped']}")

"""
Bulk import of master data (customers, suppliers, categories, products)
from Excel (.xlsx) or CSV files.

Each importer returns ``{'inserted', 'updated', 'skipped', 'errors'}``. Rows are
matched against existing records by GST number first, then by case-insensitive
name; matches are updated in place, everything else is inserted.
"""
import csv
import io
import logging

from django.db import transaction
from openpyxl import load_workbook

from textile_erp.catalog.models import Category, Product
from textile_erp.core.cache_signals import suspend_cache_signals, invalidate_master_data_cache
from .models import Customer, Supplier

logger = logging.getLogger(__name__)

IMPORT_TYPES = ('customers', 'suppliers', 'categories', 'products')

# Accepted spellings for each target field
FIELD_ALIASES = {
    'company_name': ['companyName', 'CompanyName', 'Company Name', 'company_name', 'Name'],
    'gst_number': ['gstNumber', 'GSTNumber', 'GST Number', 'gst_number', 'GSTIN'],
    'pan_number': ['panNumber', 'PANNumber', 'PAN Number', 'pan_number'],
    'city': ['city', 'City', 'address.city'],
    'contact_person': ['contactPerson', 'Contact Person', 'contact_person'],
    'phone': ['phone', 'Phone'],
    'email': ['email', 'Email'],
    'notes': ['notes', 'Notes'],
    'status': ['status', 'Status'],
    'category_name': ['categoryName', 'CategoryName', 'Category Name', 'category_name'],
    'product_name': ['productName', 'ProductName', 'Product Name', 'product_name'],
    'description': ['description', 'Description'],
    'category': ['category', 'Category', 'categoryName', 'CategoryName', 'Category Name'],
}


class ImportFileError(ValueError):
    """The uploaded file could not be read"""


def read_rows(uploaded_file):
    """Read the first sheet of an .xlsx file, or a CSV file, into a list of dicts"""
    name = (getattr(uploaded_file, 'name', '') or '').lower()
    content = uploaded_file.read()

    if name.endswith('.csv'):
        try:
            text = content.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise ImportFileError('CSV file must be UTF-8 encoded')
        return [dict(row) for row in csv.DictReader(io.StringIO(text))]

    if name.endswith('.xlsx') or name.endswith('.xlsm'):
        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except Exception as e:
            raise ImportFileError(f'Could not read Excel file: {e}')
        worksheet = workbook.worksheets[0]
        rows = worksheet.iter_rows(values_only=True)
        headers = next(rows, None)
        if not headers:
            return []
        headers = [str(h).strip() if h is not None else '' for h in headers]
        data = []
        for values in rows:
            if values is None or all(v in (None, '') for v in values):
                continue
            data.append({headers[i]: values[i] for i in range(min(len(headers), len(values))) if headers[i]})
        workbook.close()
        return data

    raise ImportFileError('Unsupported file type. Upload an .xlsx or .csv file')


def clean_row(row):
    """Strip keys and string values, dropping empty cells"""
    cleaned = {}
    for key, value in row.items():
        if key is None:
            continue
        if value is None or value == '':
            continue
        cleaned[str(key).strip()] = value.strip() if isinstance(value, str) else value
    return cleaned


def pick(row, field, default=None):
    for alias in FIELD_ALIASES[field]:
        if alias in row and row[alias] not in (None, ''):
            return str(row[alias]).strip()
    return default


def _map_party(row, status_choices):
    row = clean_row(row)
    data = {
        'company_name': pick(row, 'company_name'),
        'gst_number': (pick(row, 'gst_number') or '').upper(),
        'pan_number': (pick(row, 'pan_number') or '').upper(),
        'city': pick(row, 'city', ''),
        'contact_person': pick(row, 'contact_person', ''),
        'phone': pick(row, 'phone', ''),
        'email': pick(row, 'email', ''),
        'notes': pick(row, 'notes', ''),
        'status': pick(row, 'status', 'Active'),
    }
    valid_statuses = {choice for choice, _label in status_choices}
    if data['status'] not in valid_statuses:
        data['status'] = 'Active'
    return data


def _find_party(model, data):
    existing = None
    if data['gst_number']:
        existing = model.objects.filter(gst_number=data['gst_number']).first()
    if existing is None:
        existing = model.objects.filter(company_name__iexact=data['company_name']).first()
    return existing


def _import_parties(model, rows):
    results = {'inserted': 0, 'updated': 0, 'skipped': 0, 'errors': []}
    for index, row in enumerate(rows, start=1):
        data = _map_party(row, model.STATUS_CHOICES)
        if not data['company_name']:
            results['skipped'] += 1
            results['errors'].append(f'Row {index}: Missing company name')
            continue
        try:
            with transaction.atomic():
                existing = _find_party(model, data)
                if existing:
                    for field, value in data.items():
                        setattr(existing, field, value)
                    existing.save()
                    results['updated'] += 1
                else:
                    model.objects.create(**data)
                    results['inserted'] += 1
        except Exception as e:
            logger.warning(f"{model.__name__} import row {index} failed: {e}")
            results['skipped'] += 1
            results['errors'].append(f'Row {index}: {e}')
    return results


def import_customers(rows):
    return _import_parties(Customer, rows)


def import_suppliers(rows):
    return _import_parties(Supplier, rows)


def import_categories(rows):
    results = {'inserted': 0, 'updated': 0, 'skipped': 0, 'errors': []}
    for index, row in enumerate(rows, start=1):
        row = clean_row(row)
        name = pick(row, 'category_name')
        if not name:
            results['skipped'] += 1
            results['errors'].append(f'Row {index}: Missing category name')
            continue
        status = pick(row, 'status', 'Active')
        if status not in dict(Category.STATUS_CHOICES):
            status = 'Active'
        description = pick(row, 'description', '')
        try:
            with transaction.atomic():
                existing = Category.objects.filter(category_name__iexact=name).first()
                if existing:
                    existing.category_name = name
                    existing.description = description
                    existing.status = status
                    existing.save()
                    results['updated'] += 1
                else:
                    Category.objects.create(category_name=name, description=description, status=status)
                    results['inserted'] += 1
        except Exception as e:
            logger.warning(f"Category import row {index} failed: {e}")
            results['skipped'] += 1
            results['errors'].append(f'Row {index}: {e}')
    return results


def import_products(rows):
    results = {'inserted': 0, 'updated': 0, 'skipped': 0, 'errors': []}
    for index, row in enumerate(rows, start=1):
        row = clean_row(row)
        name = pick(row, 'product_name')
        if not name:
            results['skipped'] += 1
            results['errors'].append(f'Row {index}: Missing product name')
            continue
        category_name = pick(row, 'category')
        category = Category.objects.filter(category_name__iexact=category_name).first() if category_name else None
        if category is None:
            results['skipped'] += 1
            results['errors'].append(f'Row {index}: Category "{category_name or ""}" not found')
            continue
        status = pick(row, 'status', 'Active')
        if status not in dict(Product.STATUS_CHOICES):
            status = 'Active'
        description = pick(row, 'description', '')
        try:
            with transaction.atomic():
                existing = Product.objects.filter(product_name__iexact=name).first()
                if existing:
                    existing.product_name = name
                    existing.description = description
                    existing.category = category
                    existing.status = status
                    existing.save()
                    results['updated'] += 1
                else:
                    Product.objects.create(
                        product_name=name, description=description, category=category, status=status
                    )
                    results['inserted'] += 1
        except Exception as e:
            logger.warning(f"Product import row {index} failed: {e}")
            results['skipped'] += 1
            results['errors'].append(f'Row {index}: {e}')
    return results


IMPORTERS = {
    'customers': import_customers,
    'suppliers': import_suppliers,
    'categories': import_categories,
    'products': import_products,
}


def import_master_data(import_type, rows):
    """Run the importer for ``import_type`` over parsed rows"""
    if import_type not in IMPORTERS:
        raise ValueError(f"Invalid type. Must be one of: {', '.join(IMPORT_TYPES)}")
    with suspend_cache_signals():
        results = IMPORTERS[import_type](rows)
    invalidate_master_data_cache()
    logger.info(
        f"Import completed for {import_type}: inserted={results['inserted']} "
        f"updated={results['updated']} skipped={results['skipped']}"
    )
    return results

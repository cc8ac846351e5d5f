"""Sequential document and master-data code generation"""
import re

from django.conf import settings


def document_prefix():
    return getattr(settings, 'DOCUMENT_PREFIX', 'PKRK')


def get_max_number_for_prefix(queryset, field, prefix):
    """Get the maximum number already used after ``prefix`` in ``field``"""
    pattern = re.compile(rf'^{re.escape(prefix)}(\d+)$')
    max_number = 0
    for code in queryset.filter(**{f'{field}__startswith': prefix}).values_list(field, flat=True):
        match = pattern.match(code or '')
        if match:
            max_number = max(max_number, int(match.group(1)))
    return max_number


def next_sequential_code(queryset, field, prefix, width=4):
    """
    Next code after the highest existing one, e.g. ``CAT0007`` -> ``CAT0008``.
    Numbers are never reused while a higher code exists.
    """
    next_number = get_max_number_for_prefix(queryset, field, prefix) + 1
    return f'{prefix}{str(next_number).zfill(width)}'


def next_counted_code(queryset, field, prefix, start, width=2):
    """
    Code built from a running count (``start``), bumped until it is unused.
    Used for GRN and SO numbers which are numbered by document count.
    """
    number = start
    code = f'{prefix}{str(number).zfill(width)}'
    while queryset.filter(**{field: code}).exists():
        number += 1
        code = f'{prefix}{str(number).zfill(width)}'
    return code

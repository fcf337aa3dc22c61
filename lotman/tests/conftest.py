"""
Pytest fixtures for Lotman tests.
"""

from datetime import timedelta
from decimal import Decimal
from itertools import count

import pytest

from lotman import lots
from lotman.expiry import local_today
from lotman.tests.testapp.models import Product


_grn_lines = count(1)


@pytest.fixture
def product(db):
    """Create a test product."""
    return Product.objects.create(name='Farinha de Trigo', sku='FAR-001')


@pytest.fixture
def other_product(db):
    """A second product, for mismatch tests."""
    return Product.objects.create(name='Açúcar Cristal', sku='ACU-001')


@pytest.fixture
def make_lot(product):
    """
    Factory: receive a new lot through the receiving flow.

    Usage:
        lot = make_lot(Decimal('100'))
        lot = make_lot(Decimal('50'), expiry_date=today + timedelta(days=5))
    """
    def _make(quantity=Decimal('100'), **kwargs):
        kwargs.setdefault('product', product)
        kwargs.setdefault('performed_by', 'ana')
        kwargs.setdefault('supplier', 'Moinho Sul')
        grn_line_id = kwargs.pop('grn_line_id', f"GRN-{next(_grn_lines):04d}/1")
        return lots.create_lot_from_receipt(grn_line_id, quantity, **kwargs)
    return _make


@pytest.fixture
def lot(make_lot):
    """A lot with 100 units on hand."""
    return make_lot(Decimal('100'))


@pytest.fixture
def today():
    """Return today's date."""
    return local_today()


@pytest.fixture
def next_week():
    """Return the date a week from today."""
    return local_today() + timedelta(days=7)

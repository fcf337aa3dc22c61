"""
Tests for management commands and admin actions.
"""

from datetime import timedelta
from decimal import Decimal
from io import StringIO

import pytest
from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.contrib.messages.storage.fallback import FallbackStorage
from django.core.management import call_command
from django.test import RequestFactory

from lotman.admin import LotAdmin, LotAlertAdmin
from lotman.models import AlertType, Lot, LotAlert


pytestmark = pytest.mark.django_db


class TestEvaluateLotAlerts:

    def test_dry_run_counts_without_writing(self, make_lot, today):
        lot = make_lot(Decimal('100'), expiry_date=today + timedelta(days=60))
        Lot.objects.filter(pk=lot.pk).update(expiry_date=today + timedelta(days=10))

        out = StringIO()
        call_command('evaluate_lot_alerts', '--dry-run', stdout=out)

        assert '1 lote(s)' in out.getvalue()
        assert not LotAlert.objects.exists()

    def test_raises_alerts(self, make_lot, today):
        lot = make_lot(Decimal('100'), expiry_date=today + timedelta(days=60))
        Lot.objects.filter(pk=lot.pk).update(expiry_date=today + timedelta(days=10))

        out = StringIO()
        call_command('evaluate_lot_alerts', stdout=out)

        assert '1 alerta(s)' in out.getvalue()
        assert lot.alerts.get().type == AlertType.EXPIRY


class TestAuditLotLedgers:

    def test_reports_clean(self, lot):
        out = StringIO()
        call_command('audit_lot_ledgers', stdout=out)

        assert 'Nenhuma divergência' in out.getvalue()

    def test_fix(self, lot):
        Lot.objects.filter(pk=lot.pk).update(current_quantity=Decimal('1'))

        out = StringIO()
        call_command('audit_lot_ledgers', '--fix', stdout=out)

        lot.refresh_from_db()
        assert lot.current_quantity == Decimal('100')
        assert '1 lote(s) corrigido(s)' in out.getvalue()


class TestAdmin:

    @pytest.fixture
    def request_(self):
        user = get_user_model().objects.create_superuser('admin', 'a@example.com', 'x')
        request = RequestFactory().post('/')
        request.user = user
        request.session = {}
        request._messages = FallbackStorage(request)
        return request

    def test_lot_admin_is_read_only(self, lot, request_):
        model_admin = LotAdmin(Lot, AdminSite())

        assert not model_admin.has_add_permission(request_)
        assert not model_admin.has_change_permission(request_, lot)
        assert not model_admin.has_delete_permission(request_, lot)
        assert model_admin.available_display(lot) == Decimal('100')

    def test_acknowledge_action(self, make_lot, request_):
        lot = make_lot(Decimal('5'))
        model_admin = LotAlertAdmin(LotAlert, AdminSite())

        model_admin.acknowledge_alerts(request_, LotAlert.objects.all())

        alert = lot.alerts.get()
        assert alert.acknowledged
        assert alert.acknowledged_by == 'admin'

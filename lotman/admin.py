"""
Lotman Admin.

Provides read-only views for production debugging:
- Lot: read-only (quantities, status, location)
- Movement: read-only audit trail (timestamp, type, quantity, balance)
- LotAlert: read-only with "acknowledge" action
- Relocation: read-only audit trail of location changes
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from lotman.exceptions import LotError
from lotman.models import Lot, LotAlert, Movement, Relocation

logger = logging.getLogger(__name__)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Lot state only changes via the lots service."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class MovementInline(admin.TabularInline):
    model = Movement
    extra = 0
    can_delete = False
    fields = ['timestamp', 'type', 'direction', 'quantity', 'balance_after',
              'reference', 'performed_by']
    readonly_fields = fields
    ordering = ['-timestamp', '-id']

    def has_add_permission(self, request, obj=None):
        return False


# =========================================================================
# LOT ADMIN (read-only)
# =========================================================================

@admin.register(Lot)
class LotAdmin(ReadOnlyAdmin):
    """Lot admin — read-only."""

    list_display = ['lot_number', 'product_display', 'supplier', 'current_quantity',
                    'reserved_quantity', 'available_display', 'status_display',
                    'quality_status', 'expiry_date']
    list_filter = ['status', 'quality_status', 'expiry_date']
    search_fields = ['lot_number', 'supplier', 'grn_reference', 'po_reference']
    date_hierarchy = 'received_date'
    inlines = [MovementInline]

    @admin.display(description=_('Produto'))
    def product_display(self, obj):
        return str(obj.product) if obj.product else '?'

    @admin.display(description=_('Disponível'))
    def available_display(self, obj):
        return obj.available_quantity

    @admin.display(description=_('Status'))
    def status_display(self, obj):
        return obj.effective_status


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdmin):
    """Movement admin — read-only. Immutable audit trail."""

    list_display = ['timestamp', 'lot', 'type', 'direction', 'quantity',
                    'balance_after', 'performed_by']
    list_filter = ['type', 'direction', 'timestamp']
    search_fields = ['lot__lot_number', 'reference', 'performed_by']
    date_hierarchy = 'timestamp'
    list_select_related = ['lot']


# =========================================================================
# LOT ALERT ADMIN (read-only with acknowledge action)
# =========================================================================

@admin.register(LotAlert)
class LotAlertAdmin(ReadOnlyAdmin):
    """LotAlert admin — read-only with acknowledge action."""

    list_display = ['date', 'lot', 'type', 'message', 'acknowledged', 'acknowledged_by']
    list_filter = ['type', 'acknowledged']
    search_fields = ['lot__lot_number', 'message']
    list_select_related = ['lot']
    actions = ['acknowledge_alerts']

    @admin.action(description=_('Reconhecer alertas selecionados'))
    def acknowledge_alerts(self, request, queryset):
        from lotman import lots

        count = 0
        for alert in queryset.filter(acknowledged=False):
            try:
                lots.acknowledge_alert(alert.lot_id, alert.pk,
                                       acknowledged_by=request.user.get_username())
                count += 1
            except LotError as exc:
                logger.warning("acknowledge_alerts: failed for %s: %s", alert.pk, exc)

        self.message_user(request, _('{count} alerta(s) reconhecido(s).').format(count=count))


# =========================================================================
# RELOCATION ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Relocation)
class RelocationAdmin(ReadOnlyAdmin):
    """Relocation admin — read-only."""

    list_display = ['timestamp', 'lot', 'from_location', 'to_location', 'performed_by']
    search_fields = ['lot__lot_number', 'reference']
    list_select_related = ['lot']

"""
Lot model — a traceable batch received against a goods-receipt line.

A Lot owns its quantity fields. They change only through Movement entries
written by the ledger (lotman.services.ledger); reserved quantity changes
through reserve()/release_reservation().

Usage:
    lot = lots.create_lot_from_receipt(
        grn_line_id='GRN-0042/1', quantity=Decimal('100'), weight=Decimal('5000'),
        cost=Decimal('12.50'), supplier='Fornecedor ABC',
        location=Location(zone='A', rack='3'),
        product=product, performed_by='ana',
    )
    lot.available_quantity  # Decimal('100')
"""

from datetime import date
from decimal import Decimal

from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.utils.translation import gettext_lazy as _

from lotman import quantities
from lotman.expiry import local_today
from lotman.models.enums import LotStatus, QualityStatus

LOCATION_FIELDS = ('warehouse', 'zone', 'rack', 'shelf', 'bin')


class LotQuerySet(models.QuerySet):
    """Custom QuerySet for Lot with convenience filters."""

    def with_stock(self):
        """Lots with quantity on hand."""
        return self.filter(current_quantity__gt=0)

    def expiring_before(self, day):
        """Lots expiring on or before the given date."""
        return self.filter(expiry_date__lte=day, expiry_date__isnull=False)

    def for_product(self, product):
        """Filter lots for a specific product."""
        ct = ContentType.objects.get_for_model(product)
        return self.filter(content_type=ct, object_id=product.pk)


class Lot(models.Model):
    """
    Inventory lot.

    Invariants:
    - 0 <= reserved_quantity <= current_quantity
    - current_quantity == sum of signed movement quantities
      (== received_quantity + signed sum of non-receipt movements)

    Concurrency:
    - version is bumped on every write; writes are conditional on it
    """

    lot_number = models.CharField(
        max_length=30,
        unique=True,
        verbose_name=_('Número do Lote'),
    )

    # Product reference (generic, works with any product model)
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        verbose_name=_('Tipo de Produto'),
    )
    object_id = models.PositiveIntegerField(verbose_name=_('ID do Produto'))
    product = GenericForeignKey('content_type', 'object_id')

    # Origin
    supplier = models.CharField(
        max_length=200,
        blank=True,
        default='',
        verbose_name=_('Fornecedor'),
    )
    grn_reference = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Nota de Recebimento'),
    )
    grn_line_id = models.CharField(
        max_length=100,
        db_index=True,
        verbose_name=_('Linha da Nota de Recebimento'),
        help_text=_('Identifica a linha da nota que originou o lote'),
    )
    po_reference = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Pedido de Compra'),
    )

    # Quantities (written only by the ledger)
    received_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade Recebida'),
    )
    current_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade Atual'),
    )
    reserved_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade Reservada'),
    )
    unit = models.CharField(max_length=20, default='un', verbose_name=_('Unidade'))
    total_weight = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Peso Total'),
    )

    # Costing
    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Custo Unitário'),
    )

    # Lifecycle
    status = models.CharField(
        max_length=20,
        choices=LotStatus.choices,
        default=LotStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    quality_status = models.CharField(
        max_length=20,
        choices=QualityStatus.choices,
        default=QualityStatus.APPROVED,
        verbose_name=_('Status de Qualidade'),
    )
    reorder_threshold = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Ponto de Reposição'),
        help_text=_('Vazio = usa LOTMAN["LOW_STOCK_THRESHOLD"]'),
    )

    # Location
    warehouse = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Armazém'))
    zone = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Zona'))
    rack = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Rack'))
    shelf = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Prateleira'))
    bin = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Posição'))

    # Dates
    received_date = models.DateField(default=local_today, verbose_name=_('Data de Recebimento'))
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Data de Validade'),
    )

    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    version = models.PositiveIntegerField(default=0, verbose_name=_('Versão'))
    created_by = models.CharField(max_length=100, default='System', verbose_name=_('Criado por'))
    last_modified_by = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Alterado por'))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Criado em'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Atualizado em'))

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = ['-received_date', '-id']
        indexes = [
            models.Index(fields=['content_type', 'object_id'], name='lotman_lot_product_idx'),
            models.Index(fields=['status', 'current_quantity'], name='lotman_lot_status_qty_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def available_quantity(self) -> Decimal:
        """Available for new commitments: current - reserved."""
        return quantities.available(self.current_quantity, self.reserved_quantity)

    @property
    def total_cost(self) -> Decimal:
        """Informational stock value."""
        return self.current_quantity * self.unit_cost

    @property
    def location(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in LOCATION_FIELDS}

    def is_expired(self, today: date | None = None) -> bool:
        """Is this lot past its expiry date?"""
        if self.expiry_date is None:
            return False
        return (today or local_today()) > self.expiry_date

    @property
    def effective_status(self) -> str:
        """Stored status, or EXPIRED if the lot still holds stock past expiry."""
        if self.status != LotStatus.CONSUMED and self.is_expired():
            return LotStatus.EXPIRED
        return self.status

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def compute_status(self) -> str:
        """Status implied by the current quantities."""
        if self.current_quantity <= 0:
            return LotStatus.CONSUMED
        if self.reserved_quantity >= self.current_quantity:
            return LotStatus.RESERVED
        return LotStatus.ACTIVE

    def as_dict(self) -> dict:
        """Serialize with the field names the API layer exposes."""
        return {
            'id': self.pk,
            'lotNumber': self.lot_number,
            'product': {'type': self.content_type_id, 'id': self.object_id},
            'supplier': self.supplier,
            'grnReference': self.grn_reference,
            'grnLineId': self.grn_line_id,
            'poReference': self.po_reference,
            'receivedQuantity': str(self.received_quantity),
            'currentQuantity': str(self.current_quantity),
            'reservedQuantity': str(self.reserved_quantity),
            'availableQuantity': str(self.available_quantity),
            'unit': self.unit,
            'totalWeight': str(self.total_weight),
            'unitCost': str(self.unit_cost),
            'totalCost': str(self.total_cost),
            'status': self.effective_status,
            'qualityStatus': self.quality_status,
            'location': self.location,
            'receivedDate': self.received_date.isoformat() if self.received_date else None,
            'expiryDate': self.expiry_date.isoformat() if self.expiry_date else None,
            'version': self.version,
        }

    def __str__(self) -> str:
        expiry = f" (val:{self.expiry_date})" if self.expiry_date else ""
        return f"Lote {self.lot_number}{expiry}: {self.current_quantity} {self.unit}"

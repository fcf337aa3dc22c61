"""
Stock transfers — lot-to-lot transfers and same-lot relocations.

Lot-to-lot:
    TRANSFER_OUT on the source and TRANSFER_IN on the destination are
    written in one transaction, under both lots' sections (ascending id).
    Either both entries exist or neither does.

Relocation:
    Only the lot's location fields change. No quantity moves, so no ledger
    entry is written; a Relocation row keeps the audit trail.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from decimal import Decimal

from django.db import transaction

from lotman.exceptions import InsufficientAvailableError, ValidationError
from lotman.locks import lot_key, lot_sections
from lotman.models.enums import MovementType
from lotman.models.relocation import Relocation
from lotman.services.alerts import evaluate_alerts
from lotman.services.ledger import (
    apply_movement,
    lock_lot,
    require_performer,
    require_positive,
    save_lot,
)

logger = logging.getLogger('lotman')


@dataclass(frozen=True)
class Location:
    """Storage coordinate. Relocation replaces the whole location; empty fields clear."""

    warehouse: str = ''
    zone: str = ''
    rack: str = ''
    shelf: str = ''
    bin: str = ''

    @property
    def has_slot(self) -> bool:
        """At least one of zone/rack/shelf/bin is given."""
        return any((self.zone, self.rack, self.shelf, self.bin))

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class TransferResult:
    source_balance: Decimal
    destination_balance: Decimal | None = None


def _transfer_reference() -> str:
    return f"TRANSFER-{uuid.uuid4().hex[:12].upper()}"


class LotTransfers:
    """Transfer coordinator methods."""

    @classmethod
    def transfer(cls, source_lot_id, quantity=None, *, destination_lot_id=None,
                 new_location: Location | None = None, performed_by: str = '',
                 notes: str = '') -> TransferResult:
        """
        Transfer stock to another lot, or relocate a lot.

        Exactly one of destination_lot_id / new_location must be given.

        Raises:
            ValidationError('INVALID_DESTINATION'): Zero or two destinations,
                or destination == source
            ValidationError('LOCATION_REQUIRED'): Relocation without zone/rack/shelf/bin
            ValidationError('PRODUCT_MISMATCH'): Lots of different products
            InsufficientAvailableError: quantity > source.available_quantity
            NotFoundError: Unknown source or destination
        """
        if (destination_lot_id is None) == (new_location is None):
            raise ValidationError(
                'INVALID_DESTINATION',
                lot_id=source_lot_id,
                destination_lot_id=destination_lot_id,
            )

        if new_location is not None:
            return cls.relocate(
                source_lot_id, as_location(new_location),
                quantity=quantity, performed_by=performed_by, notes=notes,
            )
        return cls.transfer_between_lots(
            source_lot_id, destination_lot_id, quantity,
            performed_by=performed_by, notes=notes,
        )

    @classmethod
    def transfer_between_lots(cls, source_lot_id, destination_lot_id, quantity,
                              performed_by: str = '', notes: str = '') -> TransferResult:
        """
        Move quantity from one lot into another.

        Concurrency:
            - Both lots' sections, acquired in ascending id order
            - One transaction.atomic() for both ledger entries
            - select_for_update() on both lots, ascending id order
        """
        quantity = require_positive(quantity, source_lot_id)
        performed_by = require_performer(performed_by, source_lot_id)

        if str(source_lot_id) == str(destination_lot_id):
            raise ValidationError(
                'INVALID_DESTINATION',
                lot_id=source_lot_id,
                destination_lot_id=destination_lot_id,
            )

        reference = _transfer_reference()

        with lot_sections(source_lot_id, destination_lot_id):
            with transaction.atomic():
                locked = {}
                for lot_id in sorted((source_lot_id, destination_lot_id), key=lot_key):
                    locked[lot_id] = lock_lot(lot_id)
                source = locked[source_lot_id]
                destination = locked[destination_lot_id]

                if (source.content_type_id, source.object_id) != (
                    destination.content_type_id, destination.object_id
                ):
                    raise ValidationError(
                        'PRODUCT_MISMATCH',
                        lot_id=source.pk,
                        destination_lot_id=destination.pk,
                    )

                if quantity > source.available_quantity:
                    raise InsufficientAvailableError(
                        lot_id=source.pk,
                        requested=quantity,
                        available=source.available_quantity,
                    )

                apply_movement(
                    source, MovementType.TRANSFER_OUT, quantity,
                    reference=reference,
                    notes=f"Transferido para {destination.lot_number}. {notes}".strip(),
                    performed_by=performed_by,
                    metadata={'destination_lot_id': destination.pk},
                )
                apply_movement(
                    destination, MovementType.TRANSFER_IN, quantity,
                    reference=reference,
                    notes=f"Recebido de {source.lot_number}. {notes}".strip(),
                    performed_by=performed_by,
                    metadata={'source_lot_id': source.pk},
                )

                evaluate_alerts(source)
                evaluate_alerts(destination)

        logger.info(
            "lot.transfer",
            extra={
                "source_lot_id": source.pk,
                "destination_lot_id": destination.pk,
                "qty": str(quantity),
                "reference": reference,
            },
        )
        return TransferResult(
            source_balance=source.current_quantity,
            destination_balance=destination.current_quantity,
        )

    @classmethod
    def relocate(cls, lot_id, new_location: Location, quantity=None,
                 performed_by: str = '', notes: str = '') -> TransferResult:
        """
        Change a lot's storage location.

        `quantity`, when given, is checked against available quantity; the
        whole lot moves regardless.
        """
        performed_by = require_performer(performed_by, lot_id)
        if not new_location.has_slot:
            raise ValidationError('LOCATION_REQUIRED', lot_id=lot_id)
        if quantity is not None:
            quantity = require_positive(quantity, lot_id)

        with lot_sections(lot_id):
            with transaction.atomic():
                lot = lock_lot(lot_id)

                if quantity is not None and quantity > lot.available_quantity:
                    raise InsufficientAvailableError(
                        lot_id=lot.pk,
                        requested=quantity,
                        available=lot.available_quantity,
                    )

                old_location = lot.location
                fields = ['last_modified_by']
                for name, value in new_location.as_dict().items():
                    setattr(lot, name, value)
                    fields.append(name)
                lot.last_modified_by = performed_by
                save_lot(lot, fields)

                Relocation.objects.create(
                    lot=lot,
                    from_location=old_location,
                    to_location=lot.location,
                    reference=f"LOCATION-CHANGE-{uuid.uuid4().hex[:12].upper()}",
                    notes=notes or '',
                    performed_by=performed_by,
                )

        logger.info(
            "lot.relocate",
            extra={
                "lot_id": lot.pk,
                "from": old_location,
                "to": lot.location,
            },
        )
        return TransferResult(source_balance=lot.current_quantity)


def as_location(value) -> Location:
    """Accept a Location or a plain dict of location fields."""
    if isinstance(value, Location):
        return value
    if isinstance(value, dict):
        known = {k: v or '' for k, v in value.items() if k in Location.__dataclass_fields__}
        return Location(**known)
    raise ValidationError('INVALID_DESTINATION', destination=repr(value))


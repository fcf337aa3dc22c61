"""
Management command to audit lot quantities against their ledgers.

Usage:
    python manage.py audit_lot_ledgers
    python manage.py audit_lot_ledgers --fix
"""

from django.core.management.base import BaseCommand

from lotman import lots
from lotman.models import Lot


class Command(BaseCommand):
    """Audit lot ledgers command."""

    help = 'Confere a quantidade atual de cada lote com o histórico de movimentos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Corrige a quantidade armazenada a partir dos movimentos'
        )

    def handle(self, *args, **options):
        mismatches = 0
        for lot_id in Lot.objects.order_by('pk').values_list('pk', flat=True):
            stored, replayed = lots.verify(lot_id, fix=options['fix'])
            if stored != replayed:
                mismatches += 1
                self.stdout.write(
                    self.style.WARNING(
                        f'Lote {lot_id}: armazenado {stored}, movimentos {replayed}'
                    )
                )

        if mismatches and options['fix']:
            self.stdout.write(self.style.SUCCESS(f'{mismatches} lote(s) corrigido(s)'))
        elif mismatches:
            self.stdout.write(self.style.ERROR(f'{mismatches} lote(s) divergente(s)'))
        else:
            self.stdout.write(self.style.SUCCESS('Nenhuma divergência'))

"""
Management command to evaluate lot alerts.

Picks up lots that entered the expiry lead time without being touched.
Run it daily (cron, celery beat).

Usage:
    python manage.py evaluate_lot_alerts
    python manage.py evaluate_lot_alerts --dry-run
"""

from django.core.management.base import BaseCommand

from lotman import lots
from lotman.conf import lotman_settings
from lotman.models import AlertType, LotAlert


class Command(BaseCommand):
    """Evaluate lot alerts command."""

    help = 'Avalia alertas de lotes (vencimento, estoque baixo, qualidade)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra quantos lotes seriam avaliados sem executar'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            flagged = LotAlert.objects.open().of_type(AlertType.EXPIRY).values('lot_id')
            pending = lots.expiring_lots().exclude(pk__in=flagged).count()
            self.stdout.write(
                f'{pending} lote(s) sem alerta de vencimento '
                f'(antecedência {lotman_settings.EXPIRY_LEAD_DAYS} dias)'
            )
            return

        raised = lots.evaluate_all()
        self.stdout.write(
            self.style.SUCCESS(f'{len(raised)} alerta(s) gerado(s)')
        )

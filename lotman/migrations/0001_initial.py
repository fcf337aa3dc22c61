"""
Initial migration for Lotman models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
import lotman.expiry
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Lotman models: Lot, Movement, LotAlert, Relocation."""

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
    ]

    operations = [
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lot_number', models.CharField(max_length=30, unique=True, verbose_name='Número do Lote')),
                ('object_id', models.PositiveIntegerField(verbose_name='ID do Produto')),
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Fornecedor')),
                ('grn_reference', models.CharField(blank=True, default='', max_length=50, verbose_name='Nota de Recebimento')),
                ('grn_line_id', models.CharField(db_index=True, help_text='Identifica a linha da nota que originou o lote', max_length=100, verbose_name='Linha da Nota de Recebimento')),
                ('po_reference', models.CharField(blank=True, default='', max_length=50, verbose_name='Pedido de Compra')),
                ('received_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade Recebida')),
                ('current_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade Atual')),
                ('reserved_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade Reservada')),
                ('unit', models.CharField(default='un', max_length=20, verbose_name='Unidade')),
                ('total_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Peso Total')),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Custo Unitário')),
                ('status', models.CharField(choices=[('active', 'Ativo'), ('reserved', 'Reservado'), ('consumed', 'Consumido'), ('expired', 'Vencido')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('quality_status', models.CharField(choices=[('approved', 'Aprovado'), ('under_review', 'Em análise'), ('quarantine', 'Quarentena'), ('rejected', 'Rejeitado')], default='approved', max_length=20, verbose_name='Status de Qualidade')),
                ('reorder_threshold', models.DecimalField(blank=True, decimal_places=3, help_text='Vazio = usa LOTMAN["LOW_STOCK_THRESHOLD"]', max_digits=12, null=True, verbose_name='Ponto de Reposição')),
                ('warehouse', models.CharField(blank=True, default='', max_length=100, verbose_name='Armazém')),
                ('zone', models.CharField(blank=True, default='', max_length=50, verbose_name='Zona')),
                ('rack', models.CharField(blank=True, default='', max_length=50, verbose_name='Rack')),
                ('shelf', models.CharField(blank=True, default='', max_length=50, verbose_name='Prateleira')),
                ('bin', models.CharField(blank=True, default='', max_length=50, verbose_name='Posição')),
                ('received_date', models.DateField(default=lotman.expiry.local_today, verbose_name='Data de Recebimento')),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Data de Validade')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('version', models.PositiveIntegerField(default=0, verbose_name='Versão')),
                ('created_by', models.CharField(default='System', max_length=100, verbose_name='Criado por')),
                ('last_modified_by', models.CharField(blank=True, default='', max_length=100, verbose_name='Alterado por')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='contenttypes.contenttype', verbose_name='Tipo de Produto')),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['-received_date', '-id'],
                'indexes': [
                    models.Index(fields=['content_type', 'object_id'], name='lotman_lot_product_idx'),
                    models.Index(fields=['status', 'current_quantity'], name='lotman_lot_status_qty_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('received', 'Recebido'), ('issued', 'Baixado'), ('adjusted', 'Ajustado'), ('returned', 'Devolvido'), ('damaged', 'Avariado'), ('transfer_out', 'Transferido (saída)'), ('transfer_in', 'Transferido (entrada)')], max_length=20, verbose_name='Tipo')),
                ('direction', models.CharField(choices=[('increase', 'Entrada'), ('decrease', 'Saída')], max_length=10, verbose_name='Direção')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantidade')),
                ('weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Peso')),
                ('balance_after', models.DecimalField(decimal_places=3, help_text='Quantidade atual do lote logo após este movimento', max_digits=12, verbose_name='Saldo após')),
                ('reference', models.CharField(blank=True, default='', max_length=100, verbose_name='Referência')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('performed_by', models.CharField(help_text='Obrigatório.', max_length=100, verbose_name='Responsável')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.lot', verbose_name='Lote')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['timestamp', 'id'],
                'indexes': [
                    models.Index(fields=['lot', 'timestamp'], name='lotman_mov_lot_ts_idx'),
                    models.Index(fields=['type'], name='lotman_mov_type_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LotAlert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('low_stock', 'Estoque baixo'), ('expiry', 'Vencimento'), ('quality_hold', 'Bloqueio de qualidade')], max_length=20, verbose_name='Tipo')),
                ('message', models.CharField(max_length=255, verbose_name='Mensagem')),
                ('date', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data')),
                ('acknowledged', models.BooleanField(default=False, verbose_name='Reconhecido')),
                ('acknowledged_by', models.CharField(blank=True, default='', max_length=100, verbose_name='Reconhecido por')),
                ('acknowledged_date', models.DateTimeField(blank=True, null=True, verbose_name='Reconhecido em')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='alerts', to='lotman.lot', verbose_name='Lote')),
            ],
            options={
                'verbose_name': 'Alerta de Lote',
                'verbose_name_plural': 'Alertas de Lote',
                'ordering': ['date', 'id'],
                'indexes': [
                    models.Index(fields=['type', 'acknowledged'], name='lotman_alert_type_ack_idx'),
                    models.Index(fields=['lot', 'type', 'acknowledged'], name='lotman_alert_lot_type_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Relocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_location', models.JSONField(default=dict, verbose_name='Origem')),
                ('to_location', models.JSONField(default=dict, verbose_name='Destino')),
                ('reference', models.CharField(blank=True, default='', max_length=100, verbose_name='Referência')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('performed_by', models.CharField(max_length=100, verbose_name='Responsável')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='relocations', to='lotman.lot', verbose_name='Lote')),
            ],
            options={
                'verbose_name': 'Realocação',
                'verbose_name_plural': 'Realocações',
                'ordering': ['timestamp', 'id'],
            },
        ),
    ]

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='InventoryItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pharmacy_id', models.CharField(max_length=64)),
                ('drug_name', models.CharField(max_length=200)),
                ('brand_name', models.CharField(blank=True, max_length=200)),
                ('generic_name', models.CharField(blank=True, max_length=200)),
                ('dosage_form', models.CharField(blank=True, max_length=64)),
                ('strength', models.CharField(blank=True, max_length=32)),
                ('strength_unit', models.CharField(blank=True, max_length=16)),
                ('unit', models.CharField(blank=True, max_length=32)),
                ('container_size', models.CharField(blank=True, max_length=32)),
                ('container_unit', models.CharField(blank=True, max_length=16)),
                ('pack_size', models.CharField(blank=True, max_length=32)),
                ('pack_unit', models.CharField(blank=True, max_length=16)),
                ('current_stock', models.DecimalField(decimal_places=3, default=0, max_digits=14)),
                ('cost_price', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('selling_price', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='InventoryBatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('batch_number', models.CharField(max_length=64)),
                ('quantity', models.DecimalField(decimal_places=3, default=0, max_digits=14)),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('cost_price', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('selling_price', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('supplier', models.CharField(blank=True, max_length=200)),
                ('status', models.CharField(choices=[('active', 'Active'), ('expired', 'Expired'), ('returned', 'Returned'), ('blocked', 'Blocked')], default='active', max_length=16)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='batches', to='inventory.inventoryitem')),
            ],
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pharmacy_id', models.CharField(max_length=64)),
                ('movement_type', models.CharField(choices=[('purchase', 'Purchase'), ('sale', 'Sale'), ('dispatch', 'Dispatch'), ('adjustment', 'Adjustment'), ('transfer', 'Transfer'), ('expired', 'Expired'), ('damaged', 'Damaged'), ('return', 'Return')], max_length=16)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=14)),
                ('qty_change', models.DecimalField(decimal_places=3, max_digits=14)),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('total_cost', models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True)),
                ('reference', models.CharField(blank=True, max_length=32)),
                ('reference_id', models.CharField(blank=True, max_length=64)),
                ('notes', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='inventory.inventorybatch')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='inventory.inventoryitem')),
            ],
        ),
        migrations.AddIndex(
            model_name='inventoryitem',
            index=models.Index(fields=['pharmacy_id', 'drug_name'], name='idx_item_pharmacy_name'),
        ),
        migrations.AddIndex(
            model_name='inventoryitem',
            index=models.Index(fields=['pharmacy_id', 'is_active'], name='idx_item_pharmacy_active'),
        ),
        migrations.AddIndex(
            model_name='inventorybatch',
            index=models.Index(fields=['item', 'status', 'expiry_date'], name='idx_batch_item_status_exp'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['pharmacy_id', 'item', 'created_at'], name='idx_move_pharm_item_dt'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['reference', 'reference_id'], name='idx_move_reference'),
        ),
    ]

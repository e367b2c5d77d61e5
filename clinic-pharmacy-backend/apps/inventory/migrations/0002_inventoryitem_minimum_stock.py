from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('inventory', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='inventoryitem',
            name='minimum_stock',
            field=models.DecimalField(decimal_places=3, default=10, max_digits=14),
        ),
    ]

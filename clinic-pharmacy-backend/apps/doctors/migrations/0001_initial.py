from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='DoctorProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('doctor_id', models.CharField(max_length=64, unique=True)),
                ('name', models.CharField(blank=True, max_length=200)),
                ('consultation_charge', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('hospital_charge', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('rounding_preference', models.CharField(blank=True, choices=[('none', 'No rounding'), ('nearest50', 'Nearest 50'), ('nearest100', 'Nearest 100')], max_length=16)),
                ('procedure_pricing', models.JSONField(blank=True, default=list)),
                ('currency', models.CharField(blank=True, max_length=8)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
    ]

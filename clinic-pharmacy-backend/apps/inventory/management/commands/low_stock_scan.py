from django.core.management.base import BaseCommand

from apps.inventory.alerts import low_stock


class Command(BaseCommand):
    help = "List active items at or below their minimum stock"

    def add_arguments(self, parser):
        parser.add_argument("--pharmacy", dest="pharmacy_id", default=None)

    def handle(self, *args, **options):
        result = low_stock(options["pharmacy_id"])
        for row in result:
            self.stdout.write(
                f"{row['pharmacy_id']} {row['drug_name']}: {row['current_stock']} <= {row['minimum_stock']} ({row['status']})"
            )
        self.stdout.write(self.style.SUCCESS(f"Low stock scan done: {len(result)} items"))

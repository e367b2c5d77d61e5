from datetime import date

from django.core.management.base import BaseCommand

from apps.inventory.services import expire_batches


class Command(BaseCommand):
    help = "Mark batches past their expiry date as expired and write off their stock"

    def add_arguments(self, parser):
        parser.add_argument("--pharmacy", dest="pharmacy_id", default=None)
        parser.add_argument("--date", dest="on_date", type=date.fromisoformat, default=None)

    def handle(self, *args, **options):
        result = expire_batches(on_date=options["on_date"], pharmacy_id=options["pharmacy_id"])
        self.stdout.write(self.style.SUCCESS(f"Expiry write-off done: {result}"))

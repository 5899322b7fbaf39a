import logging
from datetime import date

from django.core.management.base import BaseCommand, CommandError

from ledger.services import get_ledger_services

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Close the open invoices of credit cards whose closing day is today"

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            help="Run as if today were this date (YYYY-MM-DD)",
        )

    def handle(self, *args, **options):
        today = None
        if options.get("date"):
            try:
                today = date.fromisoformat(options["date"])
            except ValueError:
                raise CommandError(f"Invalid --date value: {options['date']}")

        logger.info(
            "close_invoices command started",
            extra={
                "date": options.get("date") or "today",
                "action": "close_invoices_command_start",
                "component": "close_invoices",
            },
        )
        closed = get_ledger_services().closing.close_invoices(today=today)

        self.stdout.write(self.style.SUCCESS(f"Closed {closed} invoice(s)"))

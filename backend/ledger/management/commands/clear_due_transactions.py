import logging
from datetime import date

from django.core.management.base import BaseCommand, CommandError

from ledger.services import get_ledger_services

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Clear pending and scheduled transactions dated today or earlier"

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            help="Reference date instead of today (YYYY-MM-DD)",
        )

    def handle(self, *args, **options):
        raw_date = options.get("date")
        try:
            today = date.fromisoformat(raw_date) if raw_date else None
        except ValueError:
            raise CommandError(f"Invalid --date value: {raw_date}")

        cleared = get_ledger_services().clearing.clear_due_transactions(today=today)

        logger.info(
            "clear_due_transactions command finished",
            extra={
                "date": raw_date or "today",
                "cleared_count": cleared,
                "action": "clear_due_command_success",
                "component": "clear_due_transactions",
            },
        )
        self.stdout.write(self.style.SUCCESS(f"Cleared {cleared} transaction(s)"))

#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

Besides the built-in commands this is the entry point of the ledger's
scheduled jobs (close_invoices, clear_due_transactions).
"""

import os
import sys


def main():
    """
    Run administrative tasks for Django.

    Uses DJANGO_SETTINGS_MODULE when set, the development settings otherwise.
    """
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings.dev")

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()

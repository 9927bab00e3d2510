from __future__ import annotations

from django.core.management.base import BaseCommand
from django.core.management.base import CommandParser

from social_feed.core.gateway import PersistenceGateway


class Command(BaseCommand):
    help = (
        "Drop every presence entry. Run at server start: connections do not "
        "survive a restart, so any rows left behind are stale."
    )

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            dest="dry_run",
            help="Report how many entries would be removed without deleting them",
        )

    def handle(self, *args, **options) -> str | None:
        gateway = PersistenceGateway()
        if options.get("dry_run"):
            count = len(gateway.list_presence())
            self.stdout.write(f"{count} presence entries would be removed.")
            return None
        removed = gateway.clear_presence()
        self.stdout.write(self.style.SUCCESS(f"Removed {removed} presence entries."))
        return None

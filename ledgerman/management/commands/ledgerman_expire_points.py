"""Management command to run one expiration sweep."""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ledgerman.service import LoyaltyService


class Command(BaseCommand):
    help = "Expire earned points whose expiration date has passed"

    def add_arguments(self, parser):
        parser.add_argument(
            "--now",
            default=None,
            help="Sweep as of this ISO 8601 datetime instead of the current time",
        )

    def handle(self, *args, **options):
        now = timezone.now()
        if options["now"]:
            now = parse_datetime(options["now"])
            if now is None:
                raise CommandError(f"Invalid datetime: {options['now']}")
            if timezone.is_naive(now):
                now = timezone.make_aware(now)

        expired = LoyaltyService.expire_all(now=now)
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} points."))

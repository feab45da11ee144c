from django.core.management.base import BaseCommand, CommandError

from core.utils import current_period
from liquidations.exceptions import LiquidationLocked
from liquidations.services import calculate_all_liquidations, create_or_update_liquidation
from users.models import User


class Command(BaseCommand):
    help = 'Calculate monthly liquidations for every active professional (or just one)'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, help='Year to liquidate (defaults to the current one)')
        parser.add_argument('--month', type=int, help='Month 1-12 (defaults to the current one)')
        parser.add_argument('--professional', help='Username or id of a single professional')

    def handle(self, *args, **options):
        current_year, current_month = current_period()
        year = options.get('year') or current_year
        month = options.get('month') or current_month
        if not 1 <= month <= 12:
            raise CommandError(f'Invalid month: {month}')

        if options.get('professional'):
            self._calculate_one(options['professional'], year, month)
            return

        report = calculate_all_liquidations(year, month)
        for item in report['updated']:
            self.stdout.write(self.style.SUCCESS(f"✓ {item['professional_name']}: liquidation #{item['liquidation_id']}"))
        for item in report['skipped']:
            self.stdout.write(self.style.WARNING(f"- {item['professional_name']}: {item['error']}"))
        for item in report['failed']:
            self.stdout.write(self.style.ERROR(f"✗ {item['professional_name']}: {item['error']}"))

        self.stdout.write(self.style.SUCCESS(
            f"\n✓ {month:02d}/{year}: {len(report['updated'])} calculated, "
            f"{len(report['skipped'])} skipped, {len(report['failed'])} failed"
        ))

    def _calculate_one(self, identifier, year, month):
        lookup = {'pk': int(identifier)} if identifier.isdigit() else {'username': identifier}
        professional = User.objects.filter(**lookup).first()
        if professional is None:
            raise CommandError(f'Professional not found: {identifier}')

        try:
            liquidation, created = create_or_update_liquidation(professional, year, month)
        except LiquidationLocked as e:
            self.stdout.write(self.style.WARNING(str(e)))
            return

        self.stdout.write(self.style.SUCCESS(
            f"✓ Liquidation {'created' if created else 'updated'} for {professional.full_name}: "
            f"total {liquidation.total_amount}, professional {liquidation.professional_amount}, "
            f"clinic {liquidation.clinic_amount}"
        ))

from django.core.management.base import BaseCommand

from core.models import SystemSetting


class Command(BaseCommand):
    help = 'Initialize default clinic settings'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clinic-name',
            help='Override the clinic name stored in settings',
        )

    def handle(self, *args, **options):
        created_keys = SystemSetting.initialize_defaults()

        for key in created_keys:
            self.stdout.write(self.style.SUCCESS(f'✓ Created setting: {key}'))

        if options.get('clinic_name'):
            SystemSetting.set_setting('clinic_name', options['clinic_name'], 'Clinic name shown on statements')
            self.stdout.write(self.style.SUCCESS(f"✓ Clinic name set to {options['clinic_name']}"))

        skipped = len(SystemSetting.DEFAULTS) - len(created_keys)
        if created_keys:
            self.stdout.write(self.style.SUCCESS(
                f'\n✓ Settings initialization complete: {len(created_keys)} created, {skipped} already existed'
            ))
        else:
            self.stdout.write(self.style.SUCCESS(f'✓ All settings already initialized ({skipped} settings)'))

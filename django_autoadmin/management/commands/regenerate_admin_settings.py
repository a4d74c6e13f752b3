"""Management command to regenerate the admin settings document."""

from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError

from django_autoadmin.admin_settings import get_settings_path, load_admin_settings, save_admin_settings
from django_autoadmin.generator import generate_admin_settings, merge_admin_settings


class Command(BaseCommand):
    """Regenerate adminSettings.json from the installed models."""

    help = "Regenerate the admin settings document, keeping existing customisations"

    def add_arguments(self, parser):
        parser.add_argument(
            "--app",
            action="append",
            dest="app_labels",
            help="App label to include (repeatable). Defaults to AUTOADMIN['APP_LABELS'].",
        )
        parser.add_argument("--output", help="Settings file path. Defaults to AUTOADMIN['SETTINGS_FILE'].")
        parser.add_argument(
            "--overwrite",
            action="store_true",
            help="Discard existing customisations instead of merging them.",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        path = get_settings_path(options.get("output"))
        self.stdout.write(f"Generating admin settings into {path}...")

        generated = generate_admin_settings(options.get("app_labels"))

        existing = None
        if path.exists() and not options["overwrite"]:
            try:
                existing = load_admin_settings(path)
            except ImproperlyConfigured as e:
                raise CommandError(f"{e} Use --overwrite to replace it.") from e

        merged = merge_admin_settings(generated, existing)
        save_admin_settings(merged, path)

        self.stdout.write(f"Found {len(merged.models)} model(s):")
        for model in merged.models:
            self.stdout.write(f"  - {model.name} ({model.id}), {len(model.fields)} field(s)")

        action = "Merged" if existing is not None else "Generated"
        self.stdout.write(self.style.SUCCESS(f"{action} admin settings in {path}"))

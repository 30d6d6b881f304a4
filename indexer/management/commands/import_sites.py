"""
Management command to import SubmissionSite records from a JSON file.

The file holds a list of site objects. Only sitemap_url and api_key are
required; everything else falls back to the same defaults as the admin.

    [
        {"sitemap_url": "https://example.com/sitemap.xml",
         "api_key": "0123456789abcdef0123456789abcdef",
         "bing_enabled": true, "bing_api_key": "..."}
    ]

Usage:
    python manage.py import_sites sites.json
    python manage.py import_sites sites.json --update    # Overwrite existing sites
    python manage.py import_sites sites.json --dry-run   # Validate only
"""

import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from indexer.models import SubmissionSite


class Command(BaseCommand):
    help = "Import submission sites from a JSON file"

    def add_arguments(self, parser):
        parser.add_argument("path", type=str, help="Path to a JSON list of site objects")
        parser.add_argument(
            "--update",
            action="store_true",
            help="Replace sites that already exist instead of skipping them",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Validate without saving",
        )

    def handle(self, *args, **options):
        path = Path(options["path"])
        update = options["update"]
        dry_run = options["dry_run"]

        if not path.exists():
            raise CommandError(f"File not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                entries = json.load(f)
        except json.JSONDecodeError as e:
            raise CommandError(f"Invalid JSON in {path}: {e}")

        if isinstance(entries, dict):
            entries = [entries]
        if not isinstance(entries, list):
            raise CommandError("Expected a JSON list of site objects")

        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN - No changes will be made"))

        created = updated = skipped = failed = 0

        for position, data in enumerate(entries, 1):
            if not isinstance(data, dict):
                self.stdout.write(self.style.ERROR(f"  entry {position}: not an object"))
                failed += 1
                continue

            label = data.get("site_id") or data.get("sitemap_url") or f"entry {position}"

            try:
                site = SubmissionSite.build(**data)
            except (TypeError, ValueError) as e:
                self.stdout.write(self.style.ERROR(f"  {label}: {e}"))
                failed += 1
                continue

            errors = site.validation_errors()
            if errors:
                self.stdout.write(self.style.ERROR(f"  {site.site_id}: {'; '.join(errors)}"))
                failed += 1
                continue

            existing = SubmissionSite.objects.filter(site_id=site.site_id).first()
            if existing and not update:
                self.stdout.write(f"  Skipping (exists): {site.site_id}")
                skipped += 1
                continue

            if dry_run:
                action = "update" if existing else "create"
                self.stdout.write(f"  Would {action}: {site.site_id}")
                continue

            if existing:
                site.pk = existing.pk
                site.created_at = existing.created_at
                site.last_run_at = existing.last_run_at
                site.save()
                self.stdout.write(self.style.SUCCESS(f"  Updated: {site.site_id}"))
                updated += 1
            else:
                site.save()
                self.stdout.write(self.style.SUCCESS(f"  Created: {site.site_id}"))
                created += 1

        self.stdout.write(
            f"\nSites - Created: {created}, Updated: {updated}, "
            f"Skipped: {skipped}, Failed: {failed}"
        )
        if failed:
            self.stdout.write(self.style.WARNING(f"{failed} site(s) failed validation"))
        else:
            self.stdout.write(self.style.SUCCESS("Import complete!"))

from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.core.i18n_lint import find_hardcoded_text, iter_source_files


class Command(BaseCommand):
    help = 'Finds user-facing strings in Python sources and templates that are not marked for translation'

    def add_arguments(self, parser):
        parser.add_argument(
            'paths',
            nargs='*',
            help='Files or directories to scan (default: the apps directory)',
        )
        parser.add_argument(
            '--exclude',
            action='append',
            default=[],
            help='Additional directory name to skip (repeatable)',
        )

    def handle(self, *args, **options):
        paths = [Path(p) for p in options['paths']] or [Path(settings.BASE_DIR) / 'apps']
        for path in paths:
            if not path.exists():
                raise CommandError(f'Path does not exist: {path}')

        total_files = sum(1 for _ in iter_source_files(paths, options['exclude']))
        results = find_hardcoded_text(paths, options['exclude'])
        total_findings = sum(len(findings) for findings in results.values())

        self.stdout.write(f'Files scanned: {total_files}')
        self.stdout.write(f'Files with potential issues: {len(results)}')
        self.stdout.write(f'Total hardcoded strings found: {total_findings}')

        if not results:
            self.stdout.write(self.style.SUCCESS('No hardcoded text found'))
            return

        for path, findings in results.items():
            self.stdout.write(self.style.MIGRATE_HEADING(f'\n{path}:'))
            for finding in findings:
                self.stdout.write(self.style.WARNING(f'  Line {finding.line}: "{finding.text}"'))
                self.stdout.write(f'    Context: {finding.line_content}')

        self.stdout.write(
            '\nWrap these strings with gettext (_("...")) in Python or '
            '{% translate %} in templates, then run makemessages.'
        )
        raise CommandError(f'Found {total_findings} hardcoded strings', returncode=1)

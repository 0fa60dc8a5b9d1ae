"""Tests for the hardcoded-text scanner and its management command."""
import shutil
import tempfile
from io import StringIO
from pathlib import Path

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase

from apps.core.i18n_lint import (
    find_hardcoded_text,
    is_user_facing,
    scan_python_source,
    scan_template_source,
    should_ignore,
)


PYTHON_SOURCE = '''"""Module docstring with several words."""
import logging
from django.utils.translation import gettext as _

logger = logging.getLogger(__name__)

STATUS = "PENDING"
MIME = "application/pdf"
KEY = "documents.upload.title"
URL = "https://example.com/some path"


def notify():
    """Function docstring is ignored too."""
    logger.info("Sending the weekly digest now")
    title = _("Welcome to Costa Beach")
    # "Commented out text here"
    return "Your document is ready"


def greeting():
    return "Bienvenue!"
'''


class HeuristicsTest(SimpleTestCase):

    def test_user_facing(self):
        self.assertTrue(is_user_facing('Hello there'))
        self.assertTrue(is_user_facing('Welcome'))
        self.assertFalse(is_user_facing('hello'))
        self.assertFalse(is_user_facing('Hello'))

    def test_ignore_patterns(self):
        for text in ['document_id', 'MAX_SIZE', '12345', 'report.pdf', '#ff00aa',
                     'rgb(0, 0, 0)', 'btn-primary', '/api/documents', 'text/plain',
                     'https://example.com', 'mailto:admin@costabeach3.com', 'Password',
                     'polls.vote.submit', '%Y-%m-%d']:
            self.assertTrue(should_ignore(text), text)

    def test_context_rules(self):
        self.assertTrue(should_ignore('Hello there', '_("Hello there")'))
        self.assertTrue(should_ignore('Hello there', 'logger.warning("Hello there")'))
        self.assertFalse(should_ignore('Hello there', 'return "Hello there"'))


class ScanPythonTest(SimpleTestCase):

    def test_finds_only_untranslated_user_text(self):
        findings = scan_python_source(PYTHON_SOURCE)
        texts = [f.text for f in findings]

        self.assertEqual(texts, ['Your document is ready', 'Bienvenue!'])
        self.assertEqual(findings[0].line, 18)
        self.assertEqual(findings[0].line_content, 'return "Your document is ready"')

    def test_bytes_are_skipped(self):
        self.assertEqual(scan_python_source('data = b"Binary payload here"\n'), [])

    def test_invalid_source_returns_nothing(self):
        self.assertEqual(scan_python_source('x = "unterminated\n'), [])


class ScanTemplateTest(SimpleTestCase):

    def test_text_nodes_and_attributes(self):
        source = (
            '{% load i18n %}\n'
            '<h1>{% translate "Documents" %}</h1>\n'
            '<p>Upload your files here</p>\n'
            '<input placeholder="Search documents">\n'
            '{# Internal note for editors #}\n'
            '{% blocktranslate %}Hello {{ name }}, welcome back{% endblocktranslate %}\n'
            '<div class="card-body">\n'
            '    Nothing to show yet\n'
            '</div>\n'
        )
        findings = scan_template_source(source)

        self.assertEqual(
            [(f.line, f.text) for f in findings],
            [(3, 'Upload your files here'), (4, 'Search documents'), (8, 'Nothing to show yet')],
        )


class FindHardcodedTextCommandTest(SimpleTestCase):

    def setUp(self):
        self.root = Path(tempfile.mkdtemp())
        (self.root / 'views.py').write_text('MESSAGE = "Please log in first"\n', encoding='utf-8')
        (self.root / 'tests').mkdir()
        (self.root / 'tests' / 'helpers.py').write_text('X = "Ignored test text"\n', encoding='utf-8')
        (self.root / 'test_views.py').write_text('Y = "Also ignored here"\n', encoding='utf-8')
        (self.root / 'clean.py').write_text('STATUS = "ok"\n', encoding='utf-8')

    def tearDown(self):
        shutil.rmtree(self.root, ignore_errors=True)

    def test_tests_are_excluded(self):
        results = find_hardcoded_text([self.root])
        self.assertEqual(list(results), [self.root / 'views.py'])

    def test_command_exits_with_error_on_findings(self):
        out = StringIO()
        with self.assertRaises(CommandError) as ctx:
            call_command('find_hardcoded_text', str(self.root), stdout=out)

        self.assertEqual(ctx.exception.returncode, 1)
        self.assertIn('Line 1: "Please log in first"', out.getvalue())

    def test_command_succeeds_on_clean_tree(self):
        out = StringIO()
        call_command('find_hardcoded_text', str(self.root / 'clean.py'), stdout=out)
        self.assertIn('No hardcoded text found', out.getvalue())

    def test_missing_path(self):
        with self.assertRaises(CommandError):
            call_command('find_hardcoded_text', str(self.root / 'missing'))

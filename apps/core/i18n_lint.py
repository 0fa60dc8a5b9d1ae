"""
Heuristic scanner for user-facing text that bypasses translation.

Python sources are read with tokenize so only real string literals are
considered (comments and docstrings never are). Django templates are
scanned line by line for text nodes and translatable attributes outside
{% trans %} / {% blocktrans %}.
"""
import io
import logging
import re
import tokenize
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = ('.py', '.html')

EXCLUDED_DIRS = {
    'tests', 'migrations', 'node_modules', '__pycache__', '.git',
    'venv', '.venv', 'env', '.env', 'site-packages', 'staticfiles', 'media',
}

# Strings matching any of these are not user-facing
IGNORE_PATTERNS = [
    re.compile(r'^[a-z_][a-zA-Z0-9_]*$'),        # identifiers
    re.compile(r'^[A-Z_][A-Z0-9_]*$'),           # constants
    re.compile(r'^\d+$'),                        # numbers
    re.compile(r'^[\w-]+\.[\w-]+$'),             # file names, domains
    re.compile(r'^#[0-9a-fA-F]{3,6}$'),          # hex colours
    re.compile(r'^rgba?\('),                     # rgb() / rgba() colours
    re.compile(r'^[a-z]+:[a-z]+$'),              # namespaced names (admin:index)
    re.compile(r'^[a-z-]+$'),                    # css classes, slugs
    re.compile(r'^\.{1,2}/'),                    # relative paths
    re.compile(r'^/'),                           # absolute paths
    re.compile(r'^https?://'),                   # URLs
    re.compile(r'^(mailto|tel|data):'),          # link schemes
    re.compile(r'^[\w.+-]+/[\w.+-]+$'),          # MIME types
    re.compile(r'^[\w-]+$'),                     # single words
    re.compile(r'^\w+\s*\('),                    # function calls
    re.compile(r'^%[-\w]'),                      # strftime / printf formats
    re.compile(r'^\{[\w.]*\}$'),                 # bare format placeholders
]

TECHNICAL_TERMS = {
    'localhost', 'api', 'url', 'http', 'https', 'json', 'xml', 'css', 'html',
    'python', 'django', 'ninja', 'celery', 'redis', 'postgres', 'oauth', 'jwt',
    'admin', 'user', 'email', 'password', 'token', 'session', 'cookie',
    'database', 'table', 'column', 'index', 'query', 'migration',
    'router', 'route', 'middleware', 'server', 'client', 'dev', 'prod',
    'build', 'deploy', 'test', 'debug', 'config', 'env', 'var',
}

# Calls whose string arguments are already translated or never shown to users
TRANSLATION_CALL_RE = re.compile(r'(?<![\w.])(_|gettext|gettext_lazy|ngettext|pgettext|gettext_noop)\s*\(')
LOGGING_CALL_RE = re.compile(r'\b(logger|logging|log)\.(debug|info|warning|warn|error|exception|critical|log)\s*\(')
IMPORT_RE = re.compile(r'^\s*(import|from)\s')

STRING_PREFIX_RE = re.compile(r'^([rRbBuUfF]*)')

# Template scanning
TEMPLATE_BLOCK_RE = re.compile(
    r'\{%\s*(blocktrans|blocktranslate)\b.*?\{%\s*(endblocktrans|endblocktranslate)\s*%\}'
    r'|\{#.*?#\}|<!--.*?-->|<script\b.*?</script>|<style\b.*?</style>'
    r'|\{%\s*comment\s*%\}.*?\{%\s*endcomment\s*%\}',
    re.DOTALL,
)
TEMPLATE_TAG_RE = re.compile(r'\{%.*?%\}|\{\{.*?\}\}')
TEXT_NODE_RE = re.compile(r'>([^<>]+)<')
TRANSLATABLE_ATTR_RE = re.compile(r'\b(title|alt|placeholder|aria-label|label)\s*=\s*"([^"]*)"')


@dataclass(frozen=True)
class Finding:
    line: int
    text: str
    line_content: str


def is_user_facing(text: str) -> bool:
    has_spaces = ' ' in text
    has_uppercase = any(c.isupper() for c in text)
    return has_spaces or (has_uppercase and len(text) > 5)


def should_ignore(text: str, context: str = '') -> bool:
    """True when a literal is clearly not user-facing or already handled."""
    stripped = text.strip()
    if len(stripped) < 3:
        return True
    if any(pattern.search(stripped) for pattern in IGNORE_PATTERNS):
        return True
    if stripped.lower() in TECHNICAL_TERMS:
        return True

    # Dotted translation keys: documents.upload.title
    if '.' in stripped and ' ' not in stripped:
        return True

    if context:
        if TRANSLATION_CALL_RE.search(context):
            return True
        if LOGGING_CALL_RE.search(context):
            return True
        if IMPORT_RE.search(context.rsplit('\n', 1)[-1]):
            return True
    return False


def _string_value(token_text: str) -> Optional[str]:
    """Body of a string literal without prefix and quotes; None for bytes."""
    prefix = STRING_PREFIX_RE.match(token_text).group(1)
    if 'b' in prefix.lower():
        return None
    body = token_text[len(prefix):]
    for quote in ('"""', "'''", '"', "'"):
        if body.startswith(quote) and body.endswith(quote) and len(body) >= 2 * len(quote):
            return body[len(quote):-len(quote)]
    return body


def _check(text: str, context: str, line: int, line_content: str) -> Optional[Finding]:
    if not text or not text.strip():
        return None
    if should_ignore(text, context):
        return None
    if not is_user_facing(text):
        return None
    return Finding(line=line, text=text, line_content=line_content.strip())


def _callee(tokens, paren_index: int) -> str:
    """Dotted name written just before an opening parenthesis, e.g. 'logger.info('."""
    parts = []
    i = paren_index - 1
    while i >= 0 and (tokens[i].type == tokenize.NAME or tokens[i].string == '.'):
        parts.insert(0, tokens[i].string)
        i -= 1
    return ''.join(parts) + '('


def _enclosing_calls(tokens, index: int) -> List[str]:
    """Calls whose argument list contains the token at index, innermost first."""
    calls = []
    depth = 0
    for i in range(index - 1, -1, -1):
        token = tokens[i]
        if token.type in (tokenize.NEWLINE, tokenize.INDENT, tokenize.DEDENT):
            break
        if token.type != tokenize.OP:
            continue
        if token.string in ')]}':
            depth += 1
        elif token.string in '([{':
            if depth:
                depth -= 1
            elif token.string == '(':
                calls.append(_callee(tokens, i))
    return calls


def scan_python_source(source: str) -> List[Finding]:
    findings: List[Finding] = []
    lines = source.splitlines()
    fstring_middle = getattr(tokenize, 'FSTRING_MIDDLE', None)

    try:
        tokens = list(tokenize.generate_tokens(io.StringIO(source).readline))
    except (tokenize.TokenError, SyntaxError) as e:
        logger.warning(f"Unable to tokenize source: {e}")
        return findings

    significant = [
        t for t in tokens
        if t.type not in (tokenize.COMMENT, tokenize.NL)
    ]

    for index, token in enumerate(significant):
        if token.type == tokenize.STRING:
            # Expression statements made of a lone string are docstrings
            previous = significant[index - 1].type if index else tokenize.NEWLINE
            following = significant[index + 1].type if index + 1 < len(significant) else tokenize.NEWLINE
            if previous in (tokenize.NEWLINE, tokenize.INDENT, tokenize.DEDENT, tokenize.ENCODING) \
                    and following in (tokenize.NEWLINE, tokenize.ENDMARKER):
                continue
            text = _string_value(token.string)
        elif fstring_middle is not None and token.type == fstring_middle:
            text = token.string
        else:
            continue

        if text is None:
            continue

        row = token.start[0]
        line_content = lines[row - 1] if row - 1 < len(lines) else token.line
        context = ' '.join(_enclosing_calls(significant, index))
        if IMPORT_RE.search(line_content):
            context = f"{context}\n{line_content}"
        finding = _check(text, context, row, line_content)
        if finding:
            findings.append(finding)

    return findings


def _blank_out(match: re.Match) -> str:
    """Replace a matched region with its newlines so line numbers survive."""
    return '\n' * match.group(0).count('\n')


def scan_template_source(source: str) -> List[Finding]:
    findings: List[Finding] = []
    cleaned = TEMPLATE_BLOCK_RE.sub(_blank_out, source)
    original_lines = source.splitlines()

    for row, line in enumerate(cleaned.splitlines(), start=1):
        line_content = original_lines[row - 1] if row - 1 < len(original_lines) else line
        candidates = [m.group(2) for m in TRANSLATABLE_ATTR_RE.finditer(line)]
        candidates.extend(m.group(1) for m in TEXT_NODE_RE.finditer(line))

        # Text on its own line between tags
        if '<' not in line and '>' not in line:
            candidates.append(line)

        for candidate in candidates:
            text = TEMPLATE_TAG_RE.sub(' ', candidate).strip()
            text = re.sub(r'\s+', ' ', text)
            finding = _check(text, '', row, line_content)
            if finding:
                findings.append(finding)

    return findings


def scan_file(path: Path) -> List[Finding]:
    try:
        source = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Error reading file {path}: {e}")
        return []

    if path.suffix == '.html':
        return scan_template_source(source)
    return scan_python_source(source)


def _is_test_file(path: Path) -> bool:
    return path.name == 'tests.py' or path.name.startswith('test_') or path.name == 'conftest.py'


def iter_source_files(paths: Iterable[Path], excluded_dirs: Sequence[str] = ()) -> Iterator[Path]:
    excluded = EXCLUDED_DIRS | set(excluded_dirs)
    seen = set()
    for root in paths:
        root = Path(root)
        candidates = [root] if root.is_file() else sorted(root.rglob('*'))
        for path in candidates:
            if not path.is_file() or path.suffix not in SOURCE_SUFFIXES:
                continue
            relative = path.relative_to(root).parts if path != root else ()
            if any(part in excluded for part in relative[:-1]):
                continue
            if _is_test_file(path) or path in seen:
                continue
            seen.add(path)
            yield path


def find_hardcoded_text(paths: Iterable[Path], excluded_dirs: Sequence[str] = ()) -> Dict[Path, List[Finding]]:
    """Findings per file, only for files that have any."""
    results: Dict[Path, List[Finding]] = {}
    for path in iter_source_files(paths, excluded_dirs):
        findings = scan_file(path)
        if findings:
            results[path] = findings
    return results

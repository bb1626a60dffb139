"""
AST-based discovery of ``gettext_mapper`` / ``lgettext_mapper`` calls in Python source.

Recognized shapes::

    gettext_mapper({"en": "Hello", "de": "Hallo"})
    gettext_mapper({"en": "Hello"}, domain="admin", msgid="greeting.hello")
    lgettext_mapper({"en": "Hello", "de": "Hallo"}, default="-")

A module may declare a domain for all of its calls with
``use_gettext_mapper(domain="admin")``.

Two passes per file: the module domain is looked up first, then every call is
turned into a ``CallRecord``. ``extract_call_source`` recovers the verbatim
text of a call so the sync step can splice a replacement in its place.
"""
from __future__ import annotations

import ast
import bisect
import io
import re
import tokenize
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from gettext_mapper.utils.logging import get_logger

logger = get_logger(__name__)

GETTEXT_MAPPER = "gettext_mapper"
LGETTEXT_MAPPER = "lgettext_mapper"
# Longest first: "gettext_mapper" is a substring of "lgettext_mapper"
MACRO_NAMES: Tuple[str, ...] = (LGETTEXT_MAPPER, GETTEXT_MAPPER)
USE_FUNCTION = "use_gettext_mapper"
OPTION_KEYS = ("domain", "msgid")

Span = Tuple[int, int]

_IGNORED_TOKENS = {tokenize.COMMENT, tokenize.STRING}
for _name in ("FSTRING_MIDDLE", "TSTRING_MIDDLE"):
    if hasattr(tokenize, _name):
        _IGNORED_TOKENS.add(getattr(tokenize, _name))


@dataclass
class CallRecord:
    """One discovered call site."""
    line: int
    translations: Dict[str, Optional[str]]
    locale_order: List[str] = field(default_factory=list)
    domain: Optional[str] = None
    call_domain: Optional[str] = None
    msgid: Optional[str] = None
    macro_name: str = GETTEXT_MAPPER
    raw_span: Optional[str] = None
    column: int = 0
    offset: Optional[int] = None
    extra_args: List[str] = field(default_factory=list)


# ── Offsets & ignored spans ───────────────────────────────────────────────────

def _line_starts(content: str) -> List[int]:
    starts = [0]
    for index, ch in enumerate(content):
        if ch == "\n":
            starts.append(index + 1)
    return starts


def ignored_spans(content: str) -> List[Span]:
    """Character spans of comments and string literals, in source order.

    Best effort: when the text stops tokenizing, the spans found so far are kept.
    """
    starts = _line_starts(content)
    spans: List[Span] = []

    def _abs(row: int, col: int) -> int:
        return starts[row - 1] + col if row - 1 < len(starts) else len(content)

    try:
        for tok in tokenize.generate_tokens(io.StringIO(content).readline):
            if tok.type in _IGNORED_TOKENS:
                spans.append((_abs(*tok.start), _abs(*tok.end)))
    except (tokenize.TokenError, SyntaxError, ValueError) as e:
        logger.debug("Tokenize stopped early (%s); using %d spans", e, len(spans))
    spans.sort()
    return spans


def _in_spans(pos: int, spans: Sequence[Span], span_starts: Sequence[int]) -> bool:
    i = bisect.bisect_right(span_starts, pos) - 1
    return i >= 0 and spans[i][0] <= pos < spans[i][1]


def _char_column(line_text: str, byte_col: int) -> int:
    """ast reports UTF-8 byte columns; convert to a character column."""
    return len(line_text.encode("utf-8")[:byte_col].decode("utf-8", errors="ignore"))


# ── Raw-span extraction ───────────────────────────────────────────────────────

def _call_pattern(macro_name: Optional[str]) -> re.Pattern:
    names = (macro_name,) if macro_name else MACRO_NAMES
    alternation = "|".join(re.escape(n) for n in names)
    return re.compile(r"(?<![\w])(" + alternation + r")[ \t]*\(")


def locate_call_source(
    content: str,
    line_number: int,
    column: Optional[int] = None,
    macro_name: Optional[str] = None,
    spans: Optional[Sequence[Span]] = None,
) -> Optional[Tuple[int, str]]:
    """Return ``(offset, text)`` of the first call starting at/after ``line_number``.

    ``text`` runs from the call name (plus the leading indentation when only
    whitespace precedes it on its line) to the matching closing parenthesis.
    Parentheses and call names inside comments or string literals do not count.
    With ``column`` the call name must start exactly there; no later call is
    taken in its place.
    """
    lines = content.split("\n")
    if line_number < 1 or line_number > len(lines):
        return None

    starts = _line_starts(content)
    if spans is None:
        spans = ignored_spans(content)
    span_starts = [s for s, _ in spans]
    pattern = _call_pattern(macro_name)

    match_start = match_end = None
    if column is not None:
        line_start = starts[line_number - 1]
        m = pattern.match(lines[line_number - 1], column)
        if m is None or _in_spans(line_start + m.start(), spans, span_starts):
            return None
        match_start, match_end = line_start + m.start(), line_start + m.end()
    else:
        for index in range(line_number - 1, len(lines)):
            for m in pattern.finditer(lines[index]):
                if not _in_spans(starts[index] + m.start(), spans, span_starts):
                    match_start = starts[index] + m.start()
                    match_end = starts[index] + m.end()
                    break
            if match_start is not None:
                line_start = starts[index]
                break
        else:
            return None

    depth = 0
    end = None
    # match_end - 1 is the opening parenthesis
    for pos in range(match_end - 1, len(content)):
        ch = content[pos]
        if ch not in "()" or _in_spans(pos, spans, span_starts):
            continue
        depth += 1 if ch == "(" else -1
        if depth == 0:
            end = pos + 1
            break
    if end is None:
        return None

    before = content[line_start:match_start]
    span_start = line_start if not before.strip() else match_start
    return span_start, content[span_start:end]


def extract_call_source(
    content: str,
    line_number: int,
    column: Optional[int] = None,
    macro_name: Optional[str] = None,
) -> Optional[str]:
    """Raw source of the call starting at/after ``line_number`` (1-based), or None.

    >>> extract_call_source('def foo():\\n    gettext_mapper({"en": "Hello"})\\n', 2)
    '    gettext_mapper({"en": "Hello"})'
    """
    located = locate_call_source(content, line_number, column=column, macro_name=macro_name)
    return located[1] if located else None


# ── AST helpers ──────────────────────────────────────────────────────────────

def _callee_name(func: ast.expr) -> Optional[str]:
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return None


def _str_constant(node: Optional[ast.AST]) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def _literal_pairs(node: ast.Dict) -> Tuple[Dict[str, Optional[str]], List[str]]:
    translations: Dict[str, Optional[str]] = {}
    order: List[str] = []
    for key_node, value_node in zip(node.keys, node.values):
        key = _str_constant(key_node)
        value = _str_constant(value_node)
        if key is None or value is None:
            continue
        if key not in translations:
            order.append(key)
        translations[key] = value
    return translations, order


def _extra_keywords(node: ast.Call, content: str) -> List[str]:
    """Source text of keyword arguments that are not literal ``domain``/``msgid`` options."""
    extras: List[str] = []
    for kw in node.keywords:
        if kw.arg in OPTION_KEYS and _str_constant(kw.value) is not None:
            continue
        segment = ast.get_source_segment(content, kw)
        if segment:
            extras.append(segment)
    return extras


def _call_options(node: ast.Call) -> Dict[str, str]:
    opts: Dict[str, str] = {}
    # gettext_mapper({...}, {"domain": "admin"})
    if len(node.args) > 1 and isinstance(node.args[1], ast.Dict):
        for key_node, value_node in zip(node.args[1].keys, node.args[1].values):
            key = _str_constant(key_node)
            value = _str_constant(value_node)
            if key in OPTION_KEYS and value is not None:
                opts[key] = value
    for kw in node.keywords:
        value = _str_constant(kw.value)
        if kw.arg in OPTION_KEYS and value is not None:
            opts[kw.arg] = value
    return opts


class _CallCollector(ast.NodeVisitor):
    """Collects candidate call nodes in source order."""

    def __init__(self, names: Sequence[str]):
        self.names = set(names)
        self.calls: List[Tuple[str, ast.Call]] = []

    def visit_Call(self, node: ast.Call):
        name = _callee_name(node.func)
        if name in self.names:
            self.calls.append((name, node))
        self.generic_visit(node)


def _parse(content: str) -> Optional[ast.AST]:
    try:
        return ast.parse(content)
    except (SyntaxError, ValueError) as e:
        logger.debug("Source does not parse: %s", e)
        return None


def _domain_from_use_call(node: ast.Call) -> Tuple[bool, Optional[str]]:
    """(declares_domain, literal domain or None)."""
    for kw in node.keywords:
        if kw.arg == "domain":
            return True, _str_constant(kw.value)
    return False, None


def find_module_domain_in_ast(tree: ast.AST) -> Optional[str]:
    collector = _CallCollector([USE_FUNCTION])
    collector.visit(tree)
    for _name, node in sorted(collector.calls, key=lambda c: (c[1].lineno, c[1].col_offset)):
        declared, domain = _domain_from_use_call(node)
        if declared:
            return domain
    return None


def extract_module_domain(content: str) -> Optional[str]:
    """Domain declared by ``use_gettext_mapper(domain="...")``, first in source order.

    >>> extract_module_domain('use_gettext_mapper(domain="admin")')
    'admin'
    >>> extract_module_domain("use_gettext_mapper()") is None
    True
    """
    tree = _parse(content)
    return find_module_domain_in_ast(tree) if tree is not None else None


def parse_translation_map(map_string: str) -> Optional[Dict[str, str]]:
    """Parse the inside of a dict display into its string→string pairs.

    >>> parse_translation_map('"en": "Hello", "de": "Hallo"')
    {'en': 'Hello', 'de': 'Hallo'}
    >>> parse_translation_map("invalid") is None
    True
    """
    try:
        tree = ast.parse("{" + map_string + "}", mode="eval")
    except (SyntaxError, ValueError):
        return None
    if not isinstance(tree.body, ast.Dict):
        return None
    translations, _order = _literal_pairs(tree.body)
    return translations or None  # type: ignore[return-value]


# ── Call discovery ───────────────────────────────────────────────────────────

def _name_position(node: ast.Call, name: str, lines: List[str]) -> Tuple[int, int]:
    """1-based line and character column of the callee name token."""
    func = node.func
    end_line = getattr(func, "end_lineno", None)
    end_col = getattr(func, "end_col_offset", None)
    if end_line is not None and end_col is not None and end_line - 1 < len(lines):
        return end_line, _char_column(lines[end_line - 1], end_col) - len(name)
    return node.lineno, _char_column(lines[node.lineno - 1], node.col_offset)


def _node_end_offset(node: ast.Call, lines: List[str], starts: List[int]) -> Optional[int]:
    """Character offset just past the call's closing parenthesis, per the AST."""
    end_line = getattr(node, "end_lineno", None)
    end_col = getattr(node, "end_col_offset", None)
    if end_line is None or end_col is None or end_line - 1 >= len(lines):
        return None
    return starts[end_line - 1] + _char_column(lines[end_line - 1], end_col)


def _build_record(
    name: str,
    node: ast.Call,
    content: str,
    lines: List[str],
    starts: List[int],
    spans: Sequence[Span],
    module_domain: Optional[str],
    default_domain: Optional[str],
) -> Optional[CallRecord]:
    if not node.args or not isinstance(node.args[0], ast.Dict):
        return None
    translations, order = _literal_pairs(node.args[0])
    if not translations:
        return None

    opts = _call_options(node)
    call_domain = opts.get("domain")
    line, column = _name_position(node, name, lines)
    located = locate_call_source(content, line, column=column, macro_name=name, spans=spans)
    end = _node_end_offset(node, lines, starts)
    if located is not None and end is not None and located[0] + len(located[1]) != end:
        located = None
    if located is None:
        logger.debug("Could not recover source text of %s call at line %d", name, line)

    return CallRecord(
        line=line,
        translations=translations,
        locale_order=order,
        domain=call_domain or module_domain or default_domain,
        call_domain=call_domain,
        msgid=opts.get("msgid"),
        macro_name=name,
        raw_span=located[1] if located else None,
        column=column,
        offset=located[0] if located else None,
        extra_args=_extra_keywords(node, content),
    )


def find_gettext_mapper_calls(content: str, default_domain: Optional[str] = None) -> Iterator[CallRecord]:
    """Yield a ``CallRecord`` for every recognized call, in (line, column) order.

    Source that does not parse yields nothing. ``default_domain`` fills
    ``CallRecord.domain`` when neither the call nor the module declares one.

    >>> [c.translations for c in find_gettext_mapper_calls('gettext_mapper({"en": "Hello", "de": "Hallo"})')]
    [{'en': 'Hello', 'de': 'Hallo'}]
    """
    tree = _parse(content)
    if tree is None:
        return

    module_domain = find_module_domain_in_ast(tree)
    collector = _CallCollector(MACRO_NAMES)
    collector.visit(tree)
    if not collector.calls:
        return

    lines = content.split("\n")
    starts = _line_starts(content)
    spans = ignored_spans(content)
    positioned = sorted(
        ((_name_position(node, name, lines), name, node) for name, node in collector.calls),
        key=lambda item: item[0],
    )
    for _pos, name, node in positioned:
        record = _build_record(name, node, content, lines, starts, spans, module_domain, default_domain)
        if record is not None:
            yield record

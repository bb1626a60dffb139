# -*- coding: utf-8 -*-
"""
Test suite for code_parser.py

Covers call discovery, options, module domains and raw-span recovery.
"""
from __future__ import annotations

import textwrap
import types
import unittest

from gettext_mapper.code_parser import (
    extract_call_source,
    extract_module_domain,
    find_gettext_mapper_calls,
    ignored_spans,
    parse_translation_map,
)


def calls(source, default_domain=None):
    return list(find_gettext_mapper_calls(textwrap.dedent(source), default_domain=default_domain))


class TestFindCalls(unittest.TestCase):
    """Test call discovery and CallRecord fields."""

    def test_simple_call(self):
        """A bare call yields one record with the map in source order."""
        found = calls('gettext_mapper({"en": "Hello", "de": "Hallo"})\n')
        self.assertEqual(len(found), 1)
        call = found[0]
        self.assertEqual(call.line, 1)
        self.assertEqual(call.translations, {"en": "Hello", "de": "Hallo"})
        self.assertEqual(call.locale_order, ["en", "de"])
        self.assertEqual(call.macro_name, "gettext_mapper")
        self.assertIsNone(call.domain)
        self.assertIsNone(call.call_domain)
        self.assertIsNone(call.msgid)
        self.assertEqual(call.raw_span, 'gettext_mapper({"en": "Hello", "de": "Hallo"})')
        self.assertEqual(call.offset, 0)

    def test_returns_generator(self):
        """Discovery is lazy."""
        result = find_gettext_mapper_calls('gettext_mapper({"en": "Hello"})')
        self.assertIsInstance(result, types.GeneratorType)

    def test_keyword_options(self):
        """domain and msgid keywords are recognized."""
        found = calls('gettext_mapper({"en": "Hello"}, domain="admin", msgid="greeting.hello")\n')
        self.assertEqual(found[0].call_domain, "admin")
        self.assertEqual(found[0].domain, "admin")
        self.assertEqual(found[0].msgid, "greeting.hello")

    def test_positional_options_dict(self):
        """A second positional dict is read as the options list."""
        found = calls('gettext_mapper({"en": "Hello"}, {"domain": "ui", "msgid": "x.y"})\n')
        self.assertEqual(found[0].call_domain, "ui")
        self.assertEqual(found[0].msgid, "x.y")

    def test_other_options_ignored(self):
        """Unknown keywords do not become options but are kept as extra arguments."""
        found = calls('lgettext_mapper({"en": "Hello"}, default="-", locale="de")\n')
        self.assertIsNone(found[0].call_domain)
        self.assertIsNone(found[0].msgid)
        self.assertEqual(found[0].extra_args, ['default="-"', 'locale="de"'])

    def test_non_literal_domain_kept_as_extra(self):
        """domain=NAME is not a usable option; its text survives as an extra argument."""
        found = calls('gettext_mapper({"en": "Hello"}, domain=DOMAIN)\n')
        self.assertIsNone(found[0].call_domain)
        self.assertEqual(found[0].extra_args, ["domain=DOMAIN"])

    def test_lgettext_mapper_macro(self):
        """lgettext_mapper is recognized and its span starts at the full name."""
        found = calls('lgettext_mapper({"en": "Hello", "de": "Hallo"})\n')
        self.assertEqual(found[0].macro_name, "lgettext_mapper")
        self.assertEqual(found[0].raw_span, 'lgettext_mapper({"en": "Hello", "de": "Hallo"})')

    def test_attribute_callee(self):
        """mapper.gettext_mapper(...) counts, the span starts at the callee name."""
        found = calls('TITLE = mapper.gettext_mapper({"en": "Title"})\n')
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].raw_span, 'gettext_mapper({"en": "Title"})')

    def test_non_string_pairs_dropped(self):
        """Pairs with a non-literal key or value are dropped, the rest is kept."""
        found = calls('gettext_mapper({"en": "Hello", "de": name, 1: "one", "fr": "Salut"})\n')
        self.assertEqual(found[0].translations, {"en": "Hello", "fr": "Salut"})
        self.assertEqual(found[0].locale_order, ["en", "fr"])

    def test_no_valid_pairs_discarded(self):
        """A call without any literal pair is not a translation call."""
        self.assertEqual(calls('gettext_mapper({"en": name})\n'), [])
        self.assertEqual(calls("gettext_mapper({})\n"), [])

    def test_non_dict_argument_discarded(self):
        """A variable as first argument is skipped."""
        self.assertEqual(calls("gettext_mapper(translations)\n"), [])
        self.assertEqual(calls("gettext_mapper()\n"), [])

    def test_duplicate_keys(self):
        """Last value wins, first position is kept."""
        found = calls('gettext_mapper({"en": "A", "de": "B", "en": "C"})\n')
        self.assertEqual(found[0].translations, {"en": "C", "de": "B"})
        self.assertEqual(found[0].locale_order, ["en", "de"])

    def test_sibling_calls_unaffected_by_malformed_call(self):
        """One malformed call does not hide the valid one next to it."""
        source = """
        a = gettext_mapper(values)
        b = gettext_mapper({"en": "Valid"})
        """
        found = calls(source)
        self.assertEqual([c.translations for c in found], [{"en": "Valid"}])

    def test_calls_in_source_order(self):
        """Records come in ascending line order, nested scopes included."""
        source = """
        class Labels:
            SECOND = gettext_mapper({"en": "Second"})

        FIRST = None

        def third():
            return lgettext_mapper({"en": "Third"})
        """
        found = calls(source)
        self.assertEqual([c.translations["en"] for c in found], ["Second", "Third"])
        self.assertEqual([c.line for c in found], [3, 8])

    def test_syntax_error_yields_nothing(self):
        """Unparsable files yield an empty list without raising."""
        self.assertEqual(calls('def broken(:\n    gettext_mapper({"en": "Hello"})\n'), [])
        self.assertEqual(calls('gettext_mapper({"en": "Hello"\n'), [])

    def test_nul_byte_yields_nothing(self):
        """Source with NUL bytes is treated as unparsable."""
        self.assertEqual(list(find_gettext_mapper_calls('gettext_mapper({"en": "x"})\x00')), [])


class TestModuleDomain(unittest.TestCase):
    """Test use_gettext_mapper(domain=...) handling."""

    def test_module_domain_inherited(self):
        """Calls without their own domain inherit the module domain."""
        source = """
        gettext_mapper, lgettext_mapper = use_gettext_mapper(domain="admin")

        TITLE = gettext_mapper({"en": "Admin Panel"})
        """
        found = calls(source)
        self.assertEqual(found[0].domain, "admin")
        self.assertIsNone(found[0].call_domain)

    def test_call_domain_overrides_module_domain(self):
        """A call-level domain wins over the module domain."""
        source = """
        use_gettext_mapper(domain="admin")
        ERROR = gettext_mapper({"en": "Error"}, domain="errors")
        """
        found = calls(source)
        self.assertEqual(found[0].domain, "errors")
        self.assertEqual(found[0].call_domain, "errors")

    def test_default_domain_used_last(self):
        """Without call or module domain the configured default applies."""
        found = calls('gettext_mapper({"en": "Hello"})\n', default_domain="default")
        self.assertEqual(found[0].domain, "default")
        self.assertIsNone(found[0].call_domain)

    def test_first_declaration_wins(self):
        """Only the first declaration in source order counts."""
        source = """
        use_gettext_mapper(domain="first")
        use_gettext_mapper(domain="second")
        """
        self.assertEqual(extract_module_domain(textwrap.dedent(source)), "first")

    def test_non_literal_domain(self):
        """A computed domain yields no module domain."""
        self.assertIsNone(extract_module_domain("use_gettext_mapper(domain=DOMAIN)\n"))
        found = calls('use_gettext_mapper(domain=DOMAIN)\ngettext_mapper({"en": "Hi"})\n', default_domain="default")
        self.assertEqual(found[0].domain, "default")

    def test_declaration_without_domain(self):
        """use_gettext_mapper() without domain declares nothing."""
        self.assertIsNone(extract_module_domain("use_gettext_mapper()\n"))
        self.assertEqual(extract_module_domain('use_gettext_mapper()\nuse_gettext_mapper(domain="ui")\n'), "ui")

    def test_unparsable_source(self):
        self.assertIsNone(extract_module_domain('use_gettext_mapper(domain="x"'))


class TestCommentImmunity(unittest.TestCase):
    """Call-shaped text in comments and docstrings is never matched."""

    def test_comment_and_docstring_ignored(self):
        """Only the real call is found, and its span is the real one."""
        source = '''
        # gettext_mapper({"en": "Commented"})
        def greet():
            """Example: gettext_mapper({"en": "Documented"})"""
            return gettext_mapper({"en": "Real"})
        '''
        found = calls(source)
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].translations, {"en": "Real"})
        self.assertEqual(found[0].raw_span, 'gettext_mapper({"en": "Real"})')
        self.assertEqual(found[0].line, 5)

    def test_ignored_spans_cover_comments_and_strings(self):
        content = 'x = "a(b"  # c)\n'
        spans = ignored_spans(content)
        self.assertEqual([content[s:e] for s, e in spans], ['"a(b"', "# c)"])

    def test_ignored_spans_best_effort(self):
        """Untokenizable text does not raise."""
        self.assertIsInstance(ignored_spans('x = "unterminated\n'), list)


class TestRawSpan(unittest.TestCase):
    """Test recovery of the verbatim call text."""

    def test_leading_indentation_kept(self):
        content = 'def foo():\n    gettext_mapper({"en": "Hello"})\n'
        self.assertEqual(extract_call_source(content, 2), '    gettext_mapper({"en": "Hello"})')

    def test_search_starts_at_line(self):
        """The first call at or after the given line is returned."""
        content = 'x = 1\n\ny = gettext_mapper({"en": "Hello"})\n'
        self.assertEqual(extract_call_source(content, 1), 'gettext_mapper({"en": "Hello"})')

    def test_multiline_call(self):
        content = textwrap.dedent(
            """
            LABELS = [
                gettext_mapper(
                    {"en": "Hello", "de": "Hallo"}
                ),
            ]
            """
        )
        found = list(find_gettext_mapper_calls(content))
        self.assertEqual(found[0].line, 3)
        self.assertEqual(
            found[0].raw_span,
            '    gettext_mapper(\n        {"en": "Hello", "de": "Hallo"}\n    )',
        )

    def test_parentheses_inside_strings(self):
        """Parentheses inside translation values do not end the span."""
        content = 'gettext_mapper({"en": "Hello (world)", "de": "Hallo :)"})\n'
        self.assertEqual(
            extract_call_source(content, 1),
            'gettext_mapper({"en": "Hello (world)", "de": "Hallo :)"})',
        )

    def test_two_calls_on_one_line(self):
        """Each record gets its own span."""
        found = calls('a, b = gettext_mapper({"en": "A"}), gettext_mapper({"en": "B"})\n')
        self.assertEqual([c.raw_span for c in found], ['gettext_mapper({"en": "A"})', 'gettext_mapper({"en": "B"})'])
        self.assertEqual([c.column for c in found], [7, 36])

    def test_non_ascii_prefix(self):
        """Columns are characters, not UTF-8 bytes."""
        found = calls('título = gettext_mapper({"en": "Title", "es": "Título"})\n')
        self.assertEqual(found[0].raw_span, 'gettext_mapper({"en": "Title", "es": "Título"})')
        self.assertEqual(found[0].column, 9)

    def test_prefers_longer_name(self):
        """lgettext_mapper is never cut down to gettext_mapper."""
        content = '    lgettext_mapper({"en": "Hello"})\n'
        self.assertEqual(extract_call_source(content, 1), '    lgettext_mapper({"en": "Hello"})')

    def test_similar_identifier_not_matched(self):
        """my_gettext_mapper(...) is not a call of ours."""
        self.assertIsNone(extract_call_source('my_gettext_mapper({"en": "x"})\n', 1))

    def test_out_of_range_line(self):
        content = 'gettext_mapper({"en": "Hello"})\n'
        self.assertIsNone(extract_call_source(content, 0))
        self.assertIsNone(extract_call_source(content, 10))

    def test_unbalanced(self):
        """Delimiters that never balance yield None."""
        self.assertIsNone(extract_call_source('gettext_mapper({"en": "Hello"}\n', 1))

    def test_no_call(self):
        self.assertIsNone(extract_call_source("x = 1\n", 1))

    def test_column_must_match_exactly(self):
        """With a column, a later call is never returned in place of the requested one."""
        content = 'a = 1\nb = gettext_mapper({"en": "Hello"})\n'
        self.assertIsNone(extract_call_source(content, 1, column=4))
        self.assertEqual(extract_call_source(content, 2, column=4), 'gettext_mapper({"en": "Hello"})')
        self.assertIsNone(extract_call_source(content, 2, column=0))

    def test_parenthesized_callee_gets_no_span(self):
        """(gettext_mapper)(...) is found, but does not borrow the next call's text."""
        found = calls('a = (gettext_mapper)({"en": "Bye"})\nb = gettext_mapper({"en": "Hello"})\n')
        self.assertEqual([c.translations for c in found], [{"en": "Bye"}, {"en": "Hello"}])
        self.assertIsNone(found[0].raw_span)
        self.assertIsNone(found[0].offset)
        self.assertEqual(found[1].raw_span, 'gettext_mapper({"en": "Hello"})')

    def test_call_inside_fstring_keeps_own_span(self):
        """A call nested in an f-string never takes over the span of the next call."""
        found = calls('a = f"{gettext_mapper({\'en\': \'Bye\'})}"\nb = gettext_mapper({"en": "Hello"})\n')
        self.assertEqual([c.translations for c in found], [{"en": "Bye"}, {"en": "Hello"}])
        # Older tokenizers see the whole f-string as one string: no span at all
        self.assertIn(found[0].raw_span, (None, "gettext_mapper({'en': 'Bye'})"))
        self.assertEqual(found[1].raw_span, 'gettext_mapper({"en": "Hello"})')
        self.assertEqual(found[1].line, 2)


class TestParseTranslationMap(unittest.TestCase):

    def test_valid(self):
        self.assertEqual(parse_translation_map('"en": "Hello", "de": "Hallo"'), {"en": "Hello", "de": "Hallo"})

    def test_escapes(self):
        self.assertEqual(parse_translation_map('"en": "Say \\"hi\\""'), {"en": 'Say "hi"'})

    def test_invalid(self):
        self.assertIsNone(parse_translation_map("invalid"))
        self.assertIsNone(parse_translation_map('"en": name'))
        self.assertIsNone(parse_translation_map(""))


if __name__ == "__main__":
    unittest.main()

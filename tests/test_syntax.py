"""Tests for grammar resolution, theme selection and token spans.

Grammar files are loaded from temporary directories; broken files must be
skipped with a warning while the others stay usable.
"""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from deff.syntax import (
    GrammarRegistry,
    LexerGrammar,
    NeutralGrammar,
    load_theme,
    load_user_grammars,
    resolve_theme_mode,
    syntax_search_dirs,
    tokenize_lines,
)
from deff.syntax.grammars import MATCHED_BY_FILENAME, MATCHED_BY_FIRST_LINE, load_grammar_file
from deff.syntax.highlight import clear_token_cache, highlight_side, style_for_token
from deff.syntax.themes import THEME_AUTO, THEME_DARK, THEME_LIGHT


class GrammarResolutionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = GrammarRegistry()

    def test_filename_match_uses_pygments_registry(self) -> None:
        grammar = self.registry.resolve("src/app.py")
        self.assertIsInstance(grammar, LexerGrammar)
        self.assertEqual(grammar.name, "Python")
        self.assertEqual(grammar.matched_by, MATCHED_BY_FILENAME)

    def test_dotenv_files_use_bundled_alias(self) -> None:
        grammar = self.registry.resolve(".env.local")
        self.assertIsInstance(grammar, LexerGrammar)
        self.assertEqual(grammar.name, "Bash")

    def test_shebang_resolves_extensionless_script(self) -> None:
        grammar = self.registry.resolve("bin/tool", first_lines=["#!/usr/bin/env python3"])
        self.assertIsInstance(grammar, LexerGrammar)
        self.assertEqual(grammar.name, "Python")
        self.assertEqual(grammar.matched_by, MATCHED_BY_FIRST_LINE)

    def test_prior_path_is_consulted_for_renames(self) -> None:
        grammar = self.registry.resolve("notes.unknownext", prior_path="notes.py")
        self.assertEqual(grammar.name, "Python")

    def test_unknown_file_falls_back_to_neutral(self) -> None:
        grammar = self.registry.resolve("data.unknownext", first_lines=["nothing special"])
        self.assertIsInstance(grammar, NeutralGrammar)
        self.assertEqual(list(grammar.tokens("x = 1\n")), [])


class UserGrammarTests(unittest.TestCase):
    def test_alias_and_regex_grammars_load_and_broken_file_is_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "a_jenkins.json").write_text(
                json.dumps({"name": "Jenkinsfile", "filenames": ["Jenkinsfile"], "lexer": "groovy"}),
                encoding="utf-8",
            )
            (root / "b_todo.json").write_text(
                json.dumps(
                    {
                        "name": "Todo",
                        "filenames": ["*.todo"],
                        "first_line": "^# todo",
                        "tokens": {"root": [["#.*", "Comment"], ["\\bTODO\\b", "Keyword"], [".", "Text"], ["\\n", "Text"]]},
                    }
                ),
                encoding="utf-8",
            )
            (root / "c_broken.json").write_text("{not json", encoding="utf-8")

            with self.assertLogs("deff.syntax.grammars", level="WARNING") as logs:
                grammars = load_user_grammars([root, root / "missing"])

        self.assertEqual([grammar.name for grammar in grammars], ["Jenkinsfile", "Todo"])
        self.assertTrue(any("c_broken.json" in message for message in logs.output))

        registry = GrammarRegistry(grammars)
        self.assertEqual(registry.resolve("ci/Jenkinsfile").name, "Jenkinsfile")
        todo = registry.resolve("list.todo")
        self.assertEqual(todo.name, "Todo")
        self.assertEqual(registry.resolve("plain.unknownext", first_lines=["# todo list"]).name, "Todo")

        tokens = [(str(token), value) for token, value in todo.tokens("TODO x\n") if value.strip()]
        self.assertIn(("Token.Keyword", "TODO"), tokens)

    def test_grammar_with_unknown_state_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.json"
            path.write_text(json.dumps({"tokens": {"root": [["a", "Text", "nowhere"]]}}), encoding="utf-8")
            with self.assertRaises(ValueError):
                load_grammar_file(path)

    def test_search_dirs_order_and_dedup(self) -> None:
        repo = Path("/repo")
        env = {"DEFF_SYNTAX_PATHS": "/one:/two", "DEFF_SYNTAX_DIR": "/one"}
        dirs = syntax_search_dirs(repo, env, user_dir=Path("/user"), extra_dirs=["/extra", "/two"])
        self.assertEqual(
            [str(path) for path in dirs],
            ["/repo/.deff/syntaxes", "/repo/assets/syntaxes", "/one", "/two", "/user", "/extra"],
        )


class ThemeTests(unittest.TestCase):
    def test_explicit_mode_wins(self) -> None:
        self.assertEqual(resolve_theme_mode(THEME_LIGHT, {"DEFF_THEME": "dark"}), THEME_LIGHT)

    def test_auto_consults_env_then_colorfgbg(self) -> None:
        self.assertEqual(resolve_theme_mode(THEME_AUTO, {"DEFF_THEME": "light"}), THEME_LIGHT)
        self.assertEqual(resolve_theme_mode(THEME_AUTO, {"COLORFGBG": "15;0"}), THEME_DARK)
        self.assertEqual(resolve_theme_mode(THEME_AUTO, {"COLORFGBG": "0;default;15"}), THEME_LIGHT)
        self.assertEqual(resolve_theme_mode(THEME_AUTO, {}), THEME_DARK)

    def test_load_theme_picks_available_pygments_style(self) -> None:
        theme = load_theme(THEME_LIGHT, {})
        self.assertEqual(theme.name, THEME_LIGHT)
        self.assertIn(theme.pygments_style, {"friendly", "default"})


class HighlightTests(unittest.TestCase):
    def setUp(self) -> None:
        clear_token_cache()
        self.theme = load_theme(THEME_DARK, {})
        self.python = GrammarRegistry().resolve("x.py")

    def test_spans_are_per_line_and_skip_plain_text(self) -> None:
        spans = tokenize_lines(self.python, ["def f():", "    return 1"], self.theme)
        self.assertEqual(len(spans), 2)
        first = spans[0]
        self.assertTrue(first)
        self.assertEqual((first[0].start, first[0].end), (0, 3))
        self.assertIn("Keyword", first[0].category)
        self.assertTrue(all(span.style is not None for line in spans for span in line))
        for span in spans[1]:
            self.assertGreaterEqual(span.start, 4)

    def test_multiline_string_state_carries_across_lines(self) -> None:
        spans = tokenize_lines(self.python, ['x = """', "inside", '"""'], self.theme)
        self.assertTrue(any("String" in span.category for span in spans[1]))

    def test_neutral_grammar_produces_empty_spans(self) -> None:
        self.assertEqual(tokenize_lines(NeutralGrammar(), ["a", "b"], self.theme), ((), ()))

    def test_highlight_side_is_cached(self) -> None:
        first = highlight_side("x.py", "left", self.python, ["import os"], self.theme)
        second = highlight_side("x.py", "left", self.python, ["import os"], self.theme)
        self.assertIs(first, second)

    def test_style_for_token_returns_foreground_only(self) -> None:
        from pygments.token import Token

        style = style_for_token(self.theme.pygments_style, Token.Keyword)
        self.assertIsNotNone(style)
        self.assertIsNotNone(style.fg)


if __name__ == "__main__":
    unittest.main()

"""Grammar registry and deterministic grammar resolution.

A file gets exactly one grammar: a filename match (user grammar files,
bundled aliases, then the Pygments registry), else a first-line or shebang
match, else the neutral grammar that produces no highlighting.

User grammar files are JSON documents found in the syntax directories.
They either alias an existing Pygments lexer::

    {"name": "Jenkinsfile", "filenames": ["Jenkinsfile"], "lexer": "groovy"}

or declare a small regex grammar that is compiled into a Pygments
``RegexLexer``::

    {"name": "Todo", "filenames": ["*.todo"], "first_line": "^# todo",
     "tokens": {"root": [["^#.*$", "Comment"], ["\\\\bTODO\\\\b", "Keyword"],
                         [".", "Text"], ["\\\\n", "Text"]]}}

Grammar files are data only; nothing from a reviewed repository is executed.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import os
import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from pygments.lexer import Lexer, RegexLexer
from pygments.lexers import TextLexer, get_lexer_by_name, get_lexer_for_filename
from pygments.token import string_to_tokentype
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

SYNTAX_PATHS_ENV_VAR = "DEFF_SYNTAX_PATHS"
SYNTAX_DIR_ENV_VAR = "DEFF_SYNTAX_DIR"
REPO_SYNTAX_DIRS = (".deff/syntaxes", "assets/syntaxes")
GRAMMAR_FILE_GLOB = "*.json"

MATCHED_BY_FILENAME = "filename"
MATCHED_BY_FIRST_LINE = "first-line"
MATCHED_BY_NONE = "neutral"

# Pygments has no dotenv lexer; shell rules cover KEY=value files well.
BUNDLED_FILENAME_ALIASES: tuple[tuple[str, str], ...] = (
    (".env", "bash"),
    (".env.*", "bash"),
    ("*.env", "bash"),
    (".envrc", "bash"),
)

_SHEBANG_RE = re.compile(r"^#!\s*(\S+)(.*)$")
_FIRST_LINE_PATTERNS: tuple[tuple[re.Pattern[str], str | None], ...] = (
    (re.compile(r"^\s*<\?xml\b"), "xml"),
    (re.compile(r"^\s*<!DOCTYPE\s+html", re.IGNORECASE), "html"),
    (re.compile(r"^\s*<\?php\b"), "php"),
    # Emacs and vim modelines name the mode directly.
    (re.compile(r"-\*-.*?\bmode:\s*([\w+-]+)", re.IGNORECASE), None),
    (re.compile(r"\bvim?:.*?\b(?:ft|filetype|syntax)=([\w+-]+)"), None),
)


@dataclass(frozen=True, eq=False)
class LexerGrammar:
    """Grammar backed by a Pygments lexer instance."""

    name: str
    lexer: Lexer
    matched_by: str

    def tokens(self, text: str) -> Iterator[tuple[object, str]]:
        return self.lexer.get_tokens(text)


@dataclass(frozen=True)
class NeutralGrammar:
    """Grammar that never produces tokens; used when nothing else matches."""

    name: str = "plain text"
    matched_by: str = MATCHED_BY_NONE

    def tokens(self, text: str) -> Iterator[tuple[object, str]]:
        return iter(())


@dataclass(frozen=True, eq=False)
class UserGrammar:
    name: str
    filenames: tuple[str, ...]
    first_line: re.Pattern[str] | None
    lexer: Lexer
    source: Path


def _new_lexer(lexer_cls) -> Lexer:
    # Line mapping relies on Pygments keeping leading/trailing blank lines.
    return lexer_cls(stripnl=False)


def _validate_state_ref(ref: object, states: Mapping[str, object], path: Path) -> None:
    refs = ref if isinstance(ref, (list, tuple)) else [ref]
    for item in refs:
        if not isinstance(item, str):
            raise ValueError(f"{path.name}: state reference must be a string, got {item!r}")
        if item.startswith("#"):
            continue
        if item not in states:
            raise ValueError(f"{path.name}: unknown state {item!r}")


def _compile_token_rules(raw_tokens: object, path: Path) -> dict[str, list[tuple]]:
    if not isinstance(raw_tokens, dict) or "root" not in raw_tokens:
        raise ValueError(f"{path.name}: 'tokens' must be an object with a 'root' state")

    compiled: dict[str, list[tuple]] = {}
    for state, rules in raw_tokens.items():
        if not isinstance(rules, list):
            raise ValueError(f"{path.name}: rules for state {state!r} must be a list")
        state_rules: list[tuple] = []
        for rule in rules:
            if not isinstance(rule, list) or len(rule) not in {2, 3}:
                raise ValueError(f"{path.name}: rule {rule!r} must be [regex, token] or [regex, token, state]")
            pattern, token_name = rule[0], rule[1]
            if not isinstance(pattern, str) or not isinstance(token_name, str):
                raise ValueError(f"{path.name}: rule {rule!r} must use string regex and token names")
            token_type = string_to_tokentype(token_name)
            if len(rule) == 3:
                _validate_state_ref(rule[2], raw_tokens, path)
                next_state = tuple(rule[2]) if isinstance(rule[2], list) else rule[2]
                state_rules.append((pattern, token_type, next_state))
            else:
                state_rules.append((pattern, token_type))
        compiled[str(state)] = state_rules
    return compiled


def load_grammar_file(path: Path) -> UserGrammar:
    """Parse one JSON grammar file.

    Raises ``OSError`` when unreadable, ``ValueError`` when malformed (bad JSON,
    missing keys, uncompilable regexes) and ``ClassNotFound`` when it aliases a
    lexer Pygments does not know.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: top-level value must be an object")

    name = data.get("name") or path.stem
    if not isinstance(name, str):
        raise ValueError(f"{path.name}: 'name' must be a string")
    filenames = data.get("filenames", [])
    if not isinstance(filenames, list) or not all(isinstance(item, str) for item in filenames):
        raise ValueError(f"{path.name}: 'filenames' must be a list of glob strings")

    first_line = None
    raw_first_line = data.get("first_line")
    if raw_first_line is not None:
        if not isinstance(raw_first_line, str):
            raise ValueError(f"{path.name}: 'first_line' must be a regex string")
        try:
            first_line = re.compile(raw_first_line)
        except re.error as exc:
            raise ValueError(f"{path.name}: bad first_line regex: {exc}") from exc

    if "lexer" in data:
        alias = data["lexer"]
        if not isinstance(alias, str):
            raise ValueError(f"{path.name}: 'lexer' must be a Pygments lexer alias")
        lexer = get_lexer_by_name(alias, stripnl=False)
    elif "tokens" in data:
        tokens = _compile_token_rules(data["tokens"], path)
        lexer_cls = type(
            f"UserGrammarLexer_{re.sub(r'[^0-9A-Za-z_]', '_', name)}",
            (RegexLexer,),
            {"name": name, "aliases": [], "filenames": list(filenames), "tokens": tokens},
        )
        # Instantiation compiles the regexes and reports bad ones as ValueError.
        lexer = _new_lexer(lexer_cls)
    else:
        raise ValueError(f"{path.name}: needs either 'lexer' or 'tokens'")

    return UserGrammar(
        name=name,
        filenames=tuple(filenames),
        first_line=first_line,
        lexer=lexer,
        source=path,
    )


def load_user_grammars(directories: Iterable[Path]) -> list[UserGrammar]:
    """Load every grammar file in ``directories``, skipping broken ones.

    Missing directories are ignored silently. Anything that exists but cannot
    be used produces a warning and the remaining grammars stay available.
    """
    grammars: list[UserGrammar] = []
    for directory in directories:
        if not directory.exists():
            continue
        if not directory.is_dir():
            logger.warning("ignoring syntax path %s: not a directory", directory)
            continue
        try:
            paths = sorted(directory.glob(GRAMMAR_FILE_GLOB))
        except OSError as exc:
            logger.warning("ignoring syntax directory %s: %s", directory, exc)
            continue
        for path in paths:
            try:
                grammars.append(load_grammar_file(path))
            except (OSError, ValueError, TypeError, ClassNotFound) as exc:
                logger.warning("ignoring syntax file %s: %s", path, exc)
                continue
            logger.debug("loaded syntax file %s", path)
    return grammars


def syntax_search_dirs(
    repo_root: Path | None,
    environ: Mapping[str, str] | None = None,
    user_dir: Path | None = None,
    extra_dirs: Sequence[str] = (),
) -> list[Path]:
    """Return grammar directories in lookup order, without duplicates."""
    env = os.environ if environ is None else environ
    candidates: list[Path] = []
    if repo_root is not None:
        candidates.extend(repo_root / rel for rel in REPO_SYNTAX_DIRS)
    raw_paths = env.get(SYNTAX_PATHS_ENV_VAR, "")
    candidates.extend(Path(part).expanduser() for part in raw_paths.split(os.pathsep) if part.strip())
    raw_dir = env.get(SYNTAX_DIR_ENV_VAR, "").strip()
    if raw_dir:
        candidates.append(Path(raw_dir).expanduser())
    if user_dir is not None:
        candidates.append(user_dir)
    candidates.extend(Path(item).expanduser() for item in extra_dirs if item)

    seen: set[str] = set()
    ordered: list[Path] = []
    for candidate in candidates:
        key = os.path.normpath(str(candidate))
        if key in seen:
            continue
        seen.add(key)
        ordered.append(candidate)
    return ordered


def _shebang_programs(line: str) -> list[str]:
    match = _SHEBANG_RE.match(line)
    if not match:
        return []
    program = PurePosixPath(match.group(1)).name
    if program == "env":
        args = [arg for arg in match.group(2).split() if not arg.startswith("-") and "=" not in arg]
        program = PurePosixPath(args[0]).name if args else ""
    if not program:
        return []
    stripped = program.rstrip("0123456789.")
    return [program, stripped] if stripped and stripped != program else [program]


class GrammarRegistry:
    """Bundled Pygments lexers plus user grammar files, resolved in a fixed order."""

    def __init__(
        self,
        user_grammars: Sequence[UserGrammar] = (),
        filename_aliases: Sequence[tuple[str, str]] = BUNDLED_FILENAME_ALIASES,
    ) -> None:
        self.user_grammars = tuple(user_grammars)
        self.filename_aliases = tuple(filename_aliases)
        self._alias_lexers: dict[str, Lexer | None] = {}

    def _lexer_by_alias(self, alias: str) -> Lexer | None:
        if alias in self._alias_lexers:
            return self._alias_lexers[alias]
        try:
            lexer = get_lexer_by_name(alias, stripnl=False)
        except ClassNotFound:
            lexer = None
        self._alias_lexers[alias] = lexer
        return lexer

    def _wrap(self, lexer: Lexer, name: str, matched_by: str) -> LexerGrammar | NeutralGrammar:
        if isinstance(lexer, TextLexer):
            return NeutralGrammar()
        return LexerGrammar(name=name, lexer=lexer, matched_by=matched_by)

    def resolve_filename(self, path: str) -> LexerGrammar | NeutralGrammar | None:
        """Match ``path`` by file name only; ``None`` when nothing claims it."""
        name = PurePosixPath(path).name
        if not name:
            return None
        for grammar in self.user_grammars:
            if any(fnmatch.fnmatchcase(name, pattern) for pattern in grammar.filenames):
                return self._wrap(grammar.lexer, grammar.name, MATCHED_BY_FILENAME)
        for pattern, alias in self.filename_aliases:
            if fnmatch.fnmatchcase(name, pattern):
                lexer = self._lexer_by_alias(alias)
                if lexer is not None:
                    return self._wrap(lexer, lexer.name, MATCHED_BY_FILENAME)
        try:
            lexer = get_lexer_for_filename(name, stripnl=False)
        except ClassNotFound:
            return None
        return self._wrap(lexer, lexer.name, MATCHED_BY_FILENAME)

    def resolve_first_line(self, line: str) -> LexerGrammar | NeutralGrammar | None:
        """Match a file's first line against shebangs, user patterns and modelines."""
        for grammar in self.user_grammars:
            if grammar.first_line is not None and grammar.first_line.search(line):
                return self._wrap(grammar.lexer, grammar.name, MATCHED_BY_FIRST_LINE)
        for program in _shebang_programs(line):
            lexer = self._lexer_by_alias(program)
            if lexer is not None:
                return self._wrap(lexer, lexer.name, MATCHED_BY_FIRST_LINE)
        for pattern, alias in _FIRST_LINE_PATTERNS:
            match = pattern.search(line)
            if not match:
                continue
            lexer = self._lexer_by_alias(alias or match.group(1).lower())
            if lexer is not None:
                return self._wrap(lexer, lexer.name, MATCHED_BY_FIRST_LINE)
        return None

    def resolve(
        self,
        path: str,
        prior_path: str | None = None,
        first_lines: Sequence[str] = (),
    ) -> LexerGrammar | NeutralGrammar:
        """Pick the grammar for one file.

        ``first_lines`` holds the known first line of each side (only sides
        whose line 1 is part of the diff contribute).
        """
        for candidate in (path, prior_path):
            if not candidate:
                continue
            grammar = self.resolve_filename(candidate)
            if grammar is not None:
                return grammar
        for line in first_lines:
            grammar = self.resolve_first_line(line)
            if grammar is not None:
                return grammar
        return NeutralGrammar()

"""Unit tests for the command table and line tokenizer."""

import pytest

from davsh.commands import ALIASES, COMMANDS, aliases_of, resolve, tokenize


# ---------------------------------------------------------------------------
# resolve()
# ---------------------------------------------------------------------------

class TestResolve:
    """Tests for mapping command words and aliases to canonical names."""

    def test_canonical(self):
        assert resolve("ls") == "ls"

    def test_alias(self):
        assert resolve("rm") == "delete"
        assert resolve("mkdir") == "mkcol"
        assert resolve("!") == "sh"

    def test_case_insensitive(self):
        assert resolve("LS") == "ls"
        assert resolve("Quit") == "quit"
        assert resolve("MV") == "move"

    def test_unknown(self):
        assert resolve("frobnicate") is None

    def test_empty(self):
        assert resolve("") is None
        assert resolve(None) is None

    def test_every_alias_targets_a_command(self):
        for alias, target in ALIASES.items():
            assert target in COMMANDS, alias

    def test_no_alias_shadows_a_command(self):
        assert not set(ALIASES) & set(COMMANDS)

    def test_names_are_lower_case(self):
        for name in list(COMMANDS) + list(ALIASES):
            assert name == name.lower()


class TestAliasesOf:

    def test_quit(self):
        assert aliases_of("quit") == ["bye", "exit", "q"]

    def test_none(self):
        assert aliases_of("pwd") == []


# ---------------------------------------------------------------------------
# tokenize()
# ---------------------------------------------------------------------------

class TestTokenize:
    """Tests for splitting input lines into words."""

    def test_simple(self):
        assert tokenize("get a.txt b.txt") == ["get", "a.txt", "b.txt"]

    def test_blank(self):
        assert tokenize("") == []
        assert tokenize("   \t ") == []

    def test_extra_whitespace(self):
        assert tokenize("  ls   docs  ") == ["ls", "docs"]

    def test_double_quotes(self):
        assert tokenize('put "my file.txt"') == ["put", "my file.txt"]

    def test_single_quotes(self):
        assert tokenize("cd 'a b'") == ["cd", "a b"]

    def test_backslash_escape(self):
        assert tokenize(r"get my\ file") == ["get", "my file"]

    def test_bang_is_its_own_word(self):
        assert tokenize("!ls -l") == ["!", "ls", "-l"]

    def test_bang_with_space(self):
        assert tokenize("! ls") == ["!", "ls"]

    def test_bang_alone(self):
        assert tokenize("!") == ["!"]

    def test_bang_after_first_word_kept(self):
        assert tokenize("get wow!") == ["get", "wow!"]

    def test_unbalanced_quote(self):
        with pytest.raises(ValueError):
            tokenize('get "unterminated')

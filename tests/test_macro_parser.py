import os

import pytest

from ircmacro import (
    AliasStore, EvaluationContext, IdentifierCall, IdentifierParser, MacroHost,
    build_evaluation_stack, identifier_method,
)


class LiteralConditions:
    """Treats exactly the strings in `true_exprs` as true."""
    def __init__(self, *true_exprs):
        self.true_exprs = set(true_exprs)

    def evaluate(self, expr):
        return expr in self.true_exprs


@pytest.fixture
def ctx():
    return EvaluationContext(
        me="Me", nick="alice", channel="#python", address="alice!~al@example.org",
        active="#python", cid=3, server="irc.example.org", network="ExampleNet",
    )


@pytest.fixture
def parser(tmp_path):
    return IdentifierParser(app_dir=str(tmp_path))


# --- Basic properties ---

@pytest.mark.parametrize("text", [
    "plain text",
    "  padded with spaces  ",
    "parens (a, b) and commas, too",
    "",
])
def test_text_without_dollar_is_unchanged(parser, ctx, text):
    assert parser.parse(ctx, text) == text


def test_left_right_mid(parser, ctx):
    assert parser.parse(ctx, "$left(hello,3)") == "hel"
    assert parser.parse(ctx, "$right(hello,3)") == "llo"
    assert parser.parse(ctx, "$mid(hello,2,2)") == "el"


def test_nested_calls(parser, ctx):
    assert parser.parse(ctx, "$upper($left(hello,3))") == "HEL"
    assert parser.parse(ctx, "$len($upper($left(hello,3)))") == "3"


def test_call_embedded_in_text(parser, ctx):
    assert parser.parse(ctx, "say $upper(hi) to all") == "say HI to all"


def test_concat_marker_joins_without_spaces(parser, ctx):
    assert parser.parse(ctx, "$left(hello,2) $+ world") == "heworld"
    assert parser.parse(ctx, "a $+ b $+ c") == "abc"


def test_concat_marker_does_not_fuse_tokens(parser, ctx):
    assert parser.parse(ctx, "$chan $+ .log") == "#python.log"
    assert parser.parse(ctx, "[ $+ $nick $+ ]") == "[alice]"


def test_line_without_concat_marker_keeps_padding(parser, ctx):
    assert parser.parse(ctx, "  $nick  ") == "  alice  "
    assert parser.parse(ctx, "  $nick $+ !  ") == "alice!"


def test_iif_with_injected_conditional(tmp_path, ctx):
    p = IdentifierParser(app_dir=str(tmp_path), conditions=LiteralConditions("1 == 1"))
    assert p.parse(ctx, "$iif(1 == 1,yes,no)") == "yes"
    assert p.parse(ctx, "$iif(1 == 2,yes,no)") == "no"


def test_iif_with_default_conditional(parser, ctx):
    assert parser.parse(ctx, "$iif(1 == 1,yes,no)") == "yes"
    assert parser.parse(ctx, "$iif($nick == alice,friend,stranger)") == "friend"


def test_unknown_identifier_vanishes(parser, ctx):
    assert parser.parse(ctx, "$bogus") == ""
    assert parser.parse(ctx, "a $bogus b") == "a  b"
    assert parser.parse(ctx, "$bogus(1,2)") == ""


def test_gettok_with_comma_delimiter(parser, ctx):
    assert parser.parse(ctx, "$gettok(a,b,c,2,44)") == "b"


def test_idempotent_once_expanded(parser, ctx):
    for line in ("$upper($nick) says hi", "$left(hello,2) $+ world", "$chan"):
        once = parser.parse(ctx, line)
        assert "$" not in once
        assert parser.parse(ctx, once) == once


# --- Context identifiers ---

def test_context_identifiers(parser, ctx, tmp_path):
    assert parser.parse(ctx, "$me $nick $chan") == "Me alice #python"
    assert parser.parse(ctx, "$address") == "alice!~al@example.org"
    assert parser.parse(ctx, "$active/$cid") == "#python/3"
    assert parser.parse(ctx, "$server $network") == "irc.example.org ExampleNet"
    assert parser.parse(ctx, "$appdir") == os.path.join(str(tmp_path), "")
    assert parser.parse(ctx, "$NICK") == "alice"
    assert parser.parse(ctx, "$null") == "\0"
    assert parser.parse(ctx, "$pi").startswith("3.14159")
    assert parser.parse(ctx, "$ticks").isdigit()


def test_bare_tokens_removed_without_context(parser):
    assert parser.parse(None, "hi $nick!") == "hi !"
    assert parser.parse(None, "$upper(abc)") == "ABC"


def test_context_token_inside_arguments(parser, ctx):
    assert parser.parse(ctx, "$left($nick,3)") == "ali"
    assert parser.parse(ctx, "$upper($chan)") == "#PYTHON"


def test_multiple_calls_in_arguments(parser, ctx):
    assert parser.parse(ctx, "$concat($upper(a),$lower(B),c)") == "Abc"
    assert parser.parse(ctx, "$left($upper(hello),3)") == "HEL"


def test_inner_result_with_commas_stays_one_argument(parser, ctx):
    # $gettok returns "a,b"; $upper must receive it as a single argument.
    assert parser.parse(ctx, "$upper($gettok(a,b,c,1-2,44))") == "A,B"
    assert parser.parse(ctx, "$len($gettok(a,b,c,1-2,44))") == "3"


def test_unbalanced_call_is_left_literal(parser, ctx):
    assert parser.parse(ctx, "$left(abc") == "$left(abc"
    assert parser.parse(ctx, "$left(abc $upper(x)") == "$left(abc X"


def test_identical_calls_are_evaluated_independently(parser, ctx):
    values = set()
    for _ in range(20):
        a, b = parser.parse(ctx, "$rand(1,1000000) $rand(1,1000000)").split()
        values.add(a == b)
    assert False in values


# --- Aliases ---

def test_alias_takes_precedence(tmp_path, ctx):
    aliases = AliasStore({"greet": "hi", "upper": "shadowed"})
    p = IdentifierParser(aliases=aliases, app_dir=str(tmp_path))
    assert p.parse(ctx, "$greet") == "hi"
    assert p.parse(ctx, "$upper(x)") == "shadowed"
    # Context identifiers are answered before aliases.
    aliases.add("nick", "not used")
    assert p.parse(ctx, "$nick") == "alice"


def test_alias_with_parameters(tmp_path, ctx):
    aliases = AliasStore({
        "hello": "Hello $1, from $me",
        "count": "$0",
        "rest": "$2-",
        "shout": "$upper($1) $+ !",
    })
    p = IdentifierParser(aliases=aliases, app_dir=str(tmp_path))
    assert p.parse(ctx, "$hello(bob)") == "Hello bob, from Me"
    assert p.parse(ctx, "$count(a,b,c)") == "3"
    assert p.parse(ctx, "$rest(a,b,c)") == "b c"
    assert p.parse(ctx, "$shout($nick)") == "ALICE!"
    assert p.parse(ctx, "$count") == "0"


def test_alias_calls_alias(tmp_path, ctx):
    aliases = AliasStore({"inner": "$upper($1)", "outer": "<$inner($1)>"})
    p = IdentifierParser(aliases=aliases, app_dir=str(tmp_path))
    assert p.parse(ctx, "$outer(x)") == "<X>"


def test_self_recursive_alias_fails_closed(tmp_path, ctx):
    aliases = AliasStore({"loop": "x$loop"})
    p = IdentifierParser(aliases=aliases, max_depth=8, app_dir=str(tmp_path))
    result = p.expand(ctx, "before $loop after")
    assert result.value == ""
    assert result.recursion_limited
    assert any("RecursionLimit" in m for m in result.messages)
    # The parser is usable again afterwards.
    assert p.parse(ctx, "$upper(ok)") == "OK"


def test_sessions_sharing_an_alias_store_stay_separate(tmp_path, ctx):
    store = AliasStore({"where": "$appdir", "deep": "$concat(a,$concat(b,c))"})
    dir_a = str(tmp_path / "a")
    dir_b = str(tmp_path / "b")
    a = IdentifierParser(aliases=store, app_dir=dir_a)
    b = IdentifierParser(aliases=store, app_dir=dir_b, max_depth=2)
    assert a.parse(ctx, "$where") == os.path.join(dir_a, "")
    assert b.parse(ctx, "$where") == os.path.join(dir_b, "")
    # Each session keeps its own depth budget and diagnostics.
    assert a.parse(ctx, "$deep") == "abc"
    result = b.expand(ctx, "$deep")
    assert result.recursion_limited
    assert a.expand(ctx, "$deep").messages == []


# --- Call nesting depth ---

def _nested_concat(levels):
    return "$concat(x," * levels + "y" + ")" * levels


def test_nested_calls_within_depth(parser, ctx):
    assert parser.parse(ctx, _nested_concat(20)) == "x" * 20 + "y"


def test_deep_call_nesting_fails_closed(parser, ctx):
    result = parser.expand(ctx, "start " + _nested_concat(400) + " end")
    assert result.value == ""
    assert result.recursion_limited
    assert any("RecursionLimit" in m for m in result.messages)
    assert parser.parse(ctx, "$upper(ok)") == "OK"


def test_deep_call_nesting_with_huge_limit_does_not_raise(tmp_path, ctx):
    p = IdentifierParser(app_dir=str(tmp_path), max_depth=100000)
    result = p.expand(ctx, _nested_concat(1000))
    assert result.value == ""
    assert result.recursion_limited
    assert p.parse(ctx, "$lower(OK)") == "ok"


# --- Host identifiers and failures ---

class SessionHost(MacroHost):
    @identifier_method
    def greeting(self, who="world"):
        return f"hello {who}"

    @identifier_method
    def broken(self):
        raise RuntimeError("boom")

    def not_exposed(self):
        return "secret"


def test_host_identifier_methods(tmp_path, ctx):
    p = IdentifierParser(host=SessionHost(app_dir=str(tmp_path)))
    assert p.parse(ctx, "$greeting(bob)") == "hello bob"
    assert p.parse(ctx, "$greeting") == "hello world"
    assert p.parse(ctx, "$not_exposed") == ""


def test_failing_identifier_reports_and_degrades(tmp_path, ctx):
    p = IdentifierParser(host=SessionHost(app_dir=str(tmp_path)))
    result = p.expand(ctx, "a $broken b")
    assert result.value == "a  b"
    assert result.messages and result.messages[0].startswith("InternalError: $broken")
    # Too many args is a TypeError inside the host method: same treatment.
    assert p.parse(ctx, "$greeting(a,b)") == ""


def test_evaluation_stack_order():
    stack = build_evaluation_stack(IdentifierCall("upper", "$lower($mid(abcdef,2))"))
    assert [n.name for n in stack] == ["upper", "lower", "mid"]
    assert stack[-1].raw_args == "abcdef,2"
    # A call followed by more arguments is not a whole call.
    stack = build_evaluation_stack(IdentifierCall("upper", "$left($mid(abcdef,2),3)"))
    assert [n.name for n in stack] == ["upper", "left"]


def test_evaluation_stack_stops_at_mixed_args():
    stack = build_evaluation_stack(IdentifierCall("concat", "$upper(a),$lower(b)"))
    assert [n.name for n in stack] == ["concat"]


def test_invoke_and_resolve_identifier(parser, ctx):
    assert parser.invoke(ctx, "left", ["hello", "2"]) == "he"
    assert parser.resolve_identifier(ctx, "chan") == "#python"
    assert parser.resolve_identifier(ctx, "unknown") == ""


def test_calc_with_nested_identifier(parser, ctx):
    assert parser.parse(ctx, "$calc(2 * $len(abc))") == "6"
    assert parser.parse(ctx, "$calc(1 / 0)") == ""

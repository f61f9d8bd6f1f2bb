import pytest

from sysprog61.shellparse import (
    CommandLineParser,
    ShellParser,
    ShellTokenizer,
    Token,
    TokenType,
    tokenize,
)


def values(text):
    return [t.value for t in tokenize(text)]


def types(text):
    return [t.type for t in tokenize(text)]


def test_plain_words():
    tokens = tokenize("echo hello world")
    assert [t.value for t in tokens] == ["echo", "hello", "world"]
    assert all(t.type == TokenType.NORMAL for t in tokens)


def test_quotes_are_removed():
    assert values("echo \"a b\" 'c d'") == ["echo", "a b", "c d"]


def test_backslash_escapes_space():
    assert values(r"a\ b") == ["a b"]


def test_single_quotes_keep_backslash():
    assert values(r"'a\b'") == [r"a\b"]


def test_operator_types():
    assert types("a && b || c ; d & e | f") == [
        TokenType.NORMAL,
        TokenType.AND,
        TokenType.NORMAL,
        TokenType.OR,
        TokenType.NORMAL,
        TokenType.SEQUENCE,
        TokenType.NORMAL,
        TokenType.BACKGROUND,
        TokenType.NORMAL,
        TokenType.PIPE,
        TokenType.NORMAL,
    ]


def test_parentheses():
    assert types("(a)") == [TokenType.LPAREN, TokenType.NORMAL, TokenType.RPAREN]


@pytest.mark.parametrize("op", ["<", ">", "2>", ">>", "2>>"])
def test_redirection_operators(op):
    tokens = tokenize(f"cat {op} file")
    assert tokens[1] == Token(TokenType.REDIRECT_OP, op)
    assert tokens[2].value == "file"


def test_redirection_without_spaces():
    assert values("cat<in 2>err") == ["cat", "<", "in", "2>", "err"]


def test_leading_digits_form_a_word():
    assert tokenize("echo 12abc")[1] == Token(TokenType.NORMAL, "12abc")


def test_comment_is_ignored():
    assert values("echo hi # a comment") == ["echo", "hi"]


def test_blank_line_has_no_tokens():
    assert tokenize("   \n") == []
    tok = ShellTokenizer("   ")
    assert not tok
    assert tok.type == TokenType.EOL


def test_type_names():
    assert ShellTokenizer("&&").type_name == "TYPE_AND"
    assert ShellTokenizer("").type_name == "TYPE_EOL"
    assert ShellTokenizer("|").type == TokenType.PIPE == 5


def test_advance_walks_tokens():
    tok = ShellTokenizer("ls -l")
    assert tok.value == "ls"
    tok.advance()
    assert tok.value == "-l"
    tok.advance()
    assert not tok


def test_iteration_does_not_consume():
    tok = ShellTokenizer("a b")
    assert [t.value for t in tok] == ["a", "b"]
    assert [t.value for t in tok] == ["a", "b"]
    assert tok.value == "a"


def test_conditionals_split_on_sequence_and_background():
    line = "a ; b && c | d & e\n"
    clp = CommandLineParser(line)
    conds = list(clp.conditional_begin())
    assert [str(c) for c in conds] == ["a", "b && c | d", "e"]
    assert [c.next_op() for c in conds] == [
        TokenType.SEQUENCE,
        TokenType.BACKGROUND,
        TokenType.EOL,
    ]


def test_pipelines_within_conditional():
    clp = CommandLineParser("b && c | d & e")
    cond = clp.conditional_begin()
    pipes = list(cond.pipeline_begin())
    assert [str(p) for p in pipes] == ["b", "c | d"]
    assert [p.next_op() for p in pipes] == [TokenType.AND, TokenType.EOL]


def test_commands_within_pipeline():
    clp = CommandLineParser("c | d")
    pipe = clp.pipeline_begin()
    cmds = list(pipe.command_begin())
    assert [str(c) for c in cmds] == ["c", "d"]
    assert cmds[0].next_op_name() == "TYPE_PIPE"


def test_empty_region_between_operators():
    clp = CommandLineParser("a ; ; b")
    assert [str(c) for c in clp.conditional_begin()] == ["a", "", "b"]


def test_empty_line():
    clp = CommandLineParser("   ")
    assert not clp
    assert str(clp) == ""
    assert list(clp.conditional_begin()) == []


def test_manual_advance_reaches_end():
    clp = CommandLineParser("x ; y")
    cond = clp.conditional_begin()
    seen = []
    while cond != clp.end():
        seen.append(str(cond))
        cond.advance()
    assert seen == ["x", "y"]
    assert cond == clp.end()


def test_token_end_equals_parser_end():
    clp = CommandLineParser("echo hi")
    assert clp.token_end() == clp.end()
    assert clp.end() == clp.token_end()
    tok = clp.token_begin()
    while tok != clp.end():
        tok.advance()
    assert not tok


def test_command_tokens_via_parser():
    clp = CommandLineParser("echo \"x y\" > out")
    cmd = clp.command_begin()
    assert [t.value for t in cmd.token_begin()] == ["echo", "x y", ">", "out"]
    assert str(cmd) == "echo \"x y\" > out"


def test_next_op_of_whole_line_is_eol():
    assert CommandLineParser("a").next_op_name() == "TYPE_EOL"


def test_parser_skips_leading_space():
    assert str(ShellParser("   ls")) == "ls"


@pytest.mark.parametrize(
    "line",
    [
        "a ; b && c | d & e",
        "cat < in | sort > out && echo done",
        "x || y ; z 2> err &",
        "echo 'a;b' \"c|d\" | tr a b",
    ],
)
def test_commands_cover_all_words(line):
    clp = CommandLineParser(line)
    from_commands = [
        t.value for cmd in clp.command_begin() for t in cmd.token_begin()
    ]
    expected = [
        t.value
        for t in tokenize(line)
        if t.type in (TokenType.NORMAL, TokenType.REDIRECT_OP)
    ]
    assert from_commands == expected


@pytest.mark.parametrize("line", ["a ; b && c | d & e", "p | q || r"])
def test_nested_iteration_matches_flat(line):
    clp = CommandLineParser(line)
    nested = [
        str(cmd)
        for cond in clp.conditional_begin()
        for pipe in cond.pipeline_begin()
        for cmd in pipe.command_begin()
    ]
    flat = [str(cmd) for cmd in clp.command_begin()]
    assert nested == flat
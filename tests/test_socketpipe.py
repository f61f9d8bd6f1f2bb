import pytest

from sysprog61.socketpipe import UsageError, main, parse_buffer_option, split_commands


def test_no_buffer_option():
    assert parse_buffer_option(["cat", "file"]) == (0, ["cat", "file"])


def test_attached_buffer_option():
    assert parse_buffer_option(["-P4096", "cat"]) == (4096, ["cat"])


def test_separate_hex_buffer_option():
    assert parse_buffer_option(["-P", "0x10", "cat"]) == (16, ["cat"])


def test_buffer_option_missing_value():
    with pytest.raises(UsageError):
        parse_buffer_option(["-P"])


def test_buffer_option_not_a_number():
    with pytest.raises(UsageError):
        parse_buffer_option(["-Pabc", "cat"])


def test_buffer_option_too_large():
    with pytest.raises(UsageError):
        parse_buffer_option(["-P", str(2**31), "cat"])


def test_split_commands():
    assert split_commands(["a", "b", "|", "c"]) == [["a", "b"], ["c"]]


@pytest.mark.parametrize("argv", [[], ["a", "|"], ["|", "a"], ["a", "|", "|", "b"]])
def test_split_commands_rejects_empty(argv):
    with pytest.raises(UsageError):
        split_commands(argv)


def test_usage_message(capfd):
    assert main([]) == 1
    assert "Usage: ./socketpipe" in capfd.readouterr().err


def test_two_stage_pipeline(capfd):
    assert main(["printf", "hello", "|", "cat"]) == 0
    assert capfd.readouterr().out == "hello"


def test_three_stage_pipeline(capfd):
    assert main(["printf", "abc", "|", "cat", "|", "cat"]) == 0
    assert capfd.readouterr().out == "abc"


def test_status_of_last_command():
    assert main(["true", "|", "false"]) == 1
    assert main(["false", "|", "true"]) == 0


def test_missing_command(capfd):
    assert main(["no-such-command-for-socketpipe"]) == 1
    assert "no-such-command-for-socketpipe" in capfd.readouterr().err
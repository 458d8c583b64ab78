import pytest
from zion.core.commands.parser import CommandParser


@pytest.fixture
def parser() -> CommandParser:
    return CommandParser("/")


@pytest.mark.parametrize("line", ["", "   ", "\t\n", "hello world", "/", "  /  "])
def test_parse_rejects_non_command_lines(parser: CommandParser, line: str) -> None:
    assert parser.parse(line) is None


def test_parse_rejects_non_string(parser: CommandParser) -> None:
    assert parser.parse(None) is None  # type: ignore[arg-type]


def test_parse_splits_name_and_args(parser: CommandParser) -> None:
    parsed = parser.parse("/Weather   New\tYork  ")

    assert parsed is not None
    assert parsed.command == "weather"
    assert parsed.args == ("New", "York")
    assert parsed.full_args == "New York"
    assert parsed.original_input == "/Weather   New\tYork  "


def test_parse_without_args_has_empty_full_args(parser: CommandParser) -> None:
    parsed = parser.parse("  /help")

    assert parsed is not None
    assert parsed.command == "help"
    assert parsed.args == ()
    assert parsed.full_args == ""


def test_multi_character_prefix() -> None:
    parser = CommandParser("!/")

    parsed = parser.parse("!/calc 1 + 1")
    assert parsed is not None
    assert parsed.command == "calc"
    assert parser.parse("/calc 1 + 1") is None


def test_invalid_prefix_rejected() -> None:
    with pytest.raises(ValueError):
        CommandParser("a b")
    with pytest.raises(ValueError):
        CommandParser("")
    with pytest.raises(TypeError):
        CommandParser(None)  # type: ignore[arg-type]


def test_prefix_can_be_changed(parser: CommandParser) -> None:
    parser.command_prefix = "!"

    assert parser.parse("/help") is None
    parsed = parser.parse("!help")
    assert parsed is not None and parsed.command == "help"

from chatd.commands import (
    LoginCommand,
    QuitCommand,
    RegisterCommand,
    TextCommand,
    parse_command,
    tokenize,
)


def test_parse_register() -> None:
    assert parse_command("reg -u alice -p secret") == RegisterCommand("alice", "secret")


def test_parse_login() -> None:
    assert parse_command("login -u alice -p secret") == LoginCommand("alice", "secret")


def test_parse_text_takes_single_token_content() -> None:
    assert parse_command("text -u bob hello there") == TextCommand("bob", "hello")


def test_parse_quit_ignores_trailing_tokens() -> None:
    assert parse_command("quit") == QuitCommand()
    assert parse_command("quit now please") == QuitCommand()


def test_extra_tokens_after_password_are_ignored() -> None:
    assert parse_command("reg -u alice -p secret extra") == RegisterCommand("alice", "secret")


def test_whitespace_runs_and_tabs_separate_tokens() -> None:
    assert parse_command("  login\t-u   alice \r\n -p  pw ") == LoginCommand("alice", "pw")


def test_tokenize_keeps_non_ascii_whitespace_inside_tokens() -> None:
    assert tokenize("text -u bob a\u00a0b") == ["text", "-u", "bob", "a\u00a0b"]


def test_too_short_forms_are_unrecognized() -> None:
    assert parse_command("reg -u alice -p") is None
    assert parse_command("login -u alice") is None
    assert parse_command("text -u bob") is None


def test_wrong_flags_are_unrecognized() -> None:
    assert parse_command("reg -n alice -p secret") is None
    assert parse_command("login -u alice -x secret") is None
    assert parse_command("text -p bob hi") is None


def test_keywords_are_case_sensitive() -> None:
    assert parse_command("REG -u alice -p secret") is None
    assert parse_command("Quit") is None


def test_empty_and_unknown_lines() -> None:
    assert parse_command("") is None
    assert parse_command("   ") is None
    assert parse_command("hello world") is None

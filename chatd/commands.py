"""Command parsing for the chatd line protocol."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Union

from .constants import (
    CMD_LOGIN,
    CMD_QUIT,
    CMD_REGISTER,
    CMD_TEXT,
    OPT_PASSWORD,
    OPT_USER,
)

# Only ASCII whitespace separates tokens; other Unicode spaces stay inside a
# token.
_SEPARATORS = re.compile(r"[ \t\n\r\f]+")


@dataclass(frozen=True)
class RegisterCommand:
    name: str
    password: str


@dataclass(frozen=True)
class LoginCommand:
    name: str
    password: str


@dataclass(frozen=True)
class TextCommand:
    recipient: str
    # A single token; the grammar has no way to carry spaces.
    content: str


@dataclass(frozen=True)
class QuitCommand:
    pass


Command = Union[RegisterCommand, LoginCommand, TextCommand, QuitCommand]


def tokenize(line: str) -> list[str]:
    return [t for t in _SEPARATORS.split(line) if t]


def _parse_register(args: list[str]) -> Command | None:
    if len(args) > 4 and args[1] == OPT_USER and args[3] == OPT_PASSWORD:
        return RegisterCommand(name=args[2], password=args[4])
    return None


def _parse_login(args: list[str]) -> Command | None:
    if len(args) > 4 and args[1] == OPT_USER and args[3] == OPT_PASSWORD:
        return LoginCommand(name=args[2], password=args[4])
    return None


def _parse_text(args: list[str]) -> Command | None:
    if len(args) > 3 and args[1] == OPT_USER:
        return TextCommand(recipient=args[2], content=args[3])
    return None


def _parse_quit(args: list[str]) -> Command | None:
    return QuitCommand()


# Priority order: register, login, text, quit. Keywords are distinct, so the
# leading token selects at most one grammar.
_GRAMMARS: dict[str, Callable[[list[str]], Command | None]] = {
    CMD_REGISTER: _parse_register,
    CMD_LOGIN: _parse_login,
    CMD_TEXT: _parse_text,
    CMD_QUIT: _parse_quit,
}


def parse_command(line: str) -> Command | None:
    """Parse one protocol line.

    Returns None for anything that does not match a grammar. Keywords are
    case-sensitive and extra trailing tokens are ignored.
    """
    args = tokenize(line)
    if not args:
        return None

    grammar = _GRAMMARS.get(args[0])
    if grammar is None:
        return None
    return grammar(args)

"""Command parsing package."""

from finance_assistant.parsing.parser import CommandParser, parse, parse_amount
from finance_assistant.parsing.resolver import resolve_account, resolve_category

__all__ = [
    "CommandParser",
    "parse",
    "parse_amount",
    "resolve_account",
    "resolve_category",
]

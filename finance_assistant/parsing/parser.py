"""
Command Parser

Turns a chat utterance into a ParsedCommand, or None when the utterance
is not a command (it then goes to the language model as a question).

DESIGN DECISION: The grammar is an ORDERED TABLE of
(name, intent, pattern, extractor) rules. The first rule that matches wins.

WHY A TABLE:
1. Priority is visible in one place: transactions, then goals, then accounts
2. Adding a phrasing is one line, not a new branch
3. Tests can name the rule that fired (ParsedCommand.pattern)

The parser does not judge the values it extracts. An amount of zero, or a
one-letter account name, is passed through and rejected by the validator
with a specific reason.

Account rules keep their documented order: the typed forms
("criar conta poupança ...") are tried before the catch-all
("criar conta <anything>"), which would otherwise shadow them.
"""

import re
from decimal import Decimal
from typing import Callable, Optional

import structlog

from finance_assistant.models.actions import Intent, ParsedCommand
from finance_assistant.models.finance import AccountKind


logger = structlog.get_logger()


# Optional currency marker, then the whole numeric token. The token is
# never cut short: parse_amount decides whether it is a valid amount.
AMOUNT = (
    r"r?\$?\s*"
    r"(?<![\d.,])(?P<amount>\d(?:[\d.,]*\d)?)"
)

# Dotted thousands ("1.500,00") or a plain number with an optional
# one- or two-digit decimal part ("50", "50,5", "50.50").
_THOUSANDS = re.compile(r"^\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?$")
_PLAIN = re.compile(r"^\d+(?:[.,]\d{1,2})?$")
_CURRENCY_MARKER = re.compile(r"^\s*r?\$?\s*", re.IGNORECASE)

# Account type keyword -> (kind, display label)
ACCOUNT_TYPES: dict[str, tuple[AccountKind, str]] = {
    "corrente": (AccountKind.CHECKING, "Checking"),
    "poupança": (AccountKind.SAVINGS, "Savings"),
    "poupanca": (AccountKind.SAVINGS, "Savings"),
    "investimento": (AccountKind.INVESTMENT, "Investment"),
    "carteira": (AccountKind.WALLET, "Wallet"),
    "cartão": (AccountKind.CARD, "Card"),
    "cartao": (AccountKind.CARD, "Card"),
}


def parse_amount(text: Optional[str]) -> Optional[Decimal]:
    """
    Convert an amount literal to Decimal.

    Accepts "50", "50,5", "50.50", "R$ 1.500,00".
    Returns None when the text is not a well-formed amount, e.g. "12,345".
    """
    if text is None:
        return None

    cleaned = _CURRENCY_MARKER.sub("", text).strip()
    if _THOUSANDS.match(cleaned):
        cleaned = cleaned.replace(".", "")
    elif not _PLAIN.match(cleaned):
        return None

    return Decimal(cleaned.replace(",", "."))


# =============================================================================
# EXTRACTORS
# =============================================================================

def _amount_fields(match: re.Match) -> dict:
    amount_text = match.group("amount")
    return {
        "amount_text": amount_text,
        "amount": parse_amount(amount_text),
    }


def _transaction_fields(match: re.Match) -> dict:
    fields = _amount_fields(match)
    fields["description_fragment"] = match.group("description").strip()
    return fields


def _typed_account_fields(match: re.Match) -> dict:
    kind, label = ACCOUNT_TYPES[match.group("kind").lower()]
    free_text = (match.group("label") or "").strip()
    return {
        "account_kind": kind,
        "account_name": f"{label} {free_text}" if free_text else label,
    }


def _plain_account_fields(match: re.Match) -> dict:
    return {
        "account_kind": AccountKind.CHECKING,
        "account_name": match.group("label").strip(),
    }


def _rule(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


_ACCOUNT_TYPE_WORDS = "|".join(ACCOUNT_TYPES)

Extractor = Callable[[re.Match], dict]

# Priority order matters. Do not sort.
RULES: list[tuple[str, Intent, re.Pattern, Extractor]] = [
    # Transactions
    (
        "spent_with",
        Intent.CREATE_TRANSACTION,
        _rule(rf"gastei.*?{AMOUNT}\s*.*?\bcom\s+(?P<description>.+)"),
        _transaction_fields,
    ),
    (
        "create_entry_for",
        Intent.CREATE_TRANSACTION,
        _rule(rf"criar.*?lan[çc]amento.*?{AMOUNT}.*?\bpara\s+(?P<description>.+)"),
        _transaction_fields,
    ),
    (
        "add_expense_in",
        Intent.CREATE_TRANSACTION,
        _rule(rf"adicionar.*?gasto.*?{AMOUNT}.*?\bem\s+(?P<description>.+)"),
        _transaction_fields,
    ),
    (
        "register_expense_category",
        Intent.CREATE_TRANSACTION,
        _rule(rf"registrar.*?despesa.*?{AMOUNT}.*?\bcategoria\s+(?P<description>.+)"),
        _transaction_fields,
    ),
    # Goals
    (
        "create_goal",
        Intent.CREATE_GOAL,
        _rule(rf"criar.*?meta.*?{AMOUNT}"),
        _amount_fields,
    ),
    (
        "define_objective",
        Intent.CREATE_GOAL,
        _rule(rf"definir.*?objetivo.*?{AMOUNT}"),
        _amount_fields,
    ),
    (
        "savings_goal",
        Intent.CREATE_GOAL,
        _rule(rf"meta.*?economia.*?{AMOUNT}"),
        _amount_fields,
    ),
    # Accounts: typed form first, catch-all last
    (
        "typed_account",
        Intent.CREATE_ACCOUNT,
        _rule(
            rf"(?:criar|adicionar|nova).*?conta\s+(?P<kind>{_ACCOUNT_TYPE_WORDS})\b"
            r"(?:\s+(?P<label>.+))?"
        ),
        _typed_account_fields,
    ),
    (
        "named_account",
        Intent.CREATE_ACCOUNT,
        _rule(r"(?:criar|adicionar|nova).*?conta\s+(?P<label>.+)"),
        _plain_account_fields,
    ),
]


class CommandParser:
    """
    Matches utterances against the rule table.

    Stateless; one instance can be shared.
    """

    def __init__(
        self,
        rules: Optional[list[tuple[str, Intent, re.Pattern, Extractor]]] = None,
    ):
        self._rules = rules if rules is not None else RULES

    def parse(self, utterance: str) -> Optional[ParsedCommand]:
        """
        Recognise a command.

        Returns:
            ParsedCommand for the first matching rule, None if no rule matches
        """
        text = utterance.strip()
        if not text:
            return None

        for name, intent, pattern, extract in self._rules:
            match = pattern.search(text)
            if match is None:
                continue

            command = ParsedCommand(
                intent=intent,
                utterance=utterance,
                pattern=name,
                **extract(match),
            )
            logger.debug("command_matched", pattern=name, intent=intent.value)
            return command

        return None


def parse(utterance: str) -> Optional[ParsedCommand]:
    """Parse with the default rule table."""
    return CommandParser().parse(utterance)

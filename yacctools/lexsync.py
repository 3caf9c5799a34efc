import logging
from dataclasses import dataclass
from typing import Iterable

from yacctools.grammar import Grammar


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LexerSyncConfig:
    """Which token mismatches between a lexer and a grammar are fatal.

    Lexers often define tokens such as reserved words which the grammar
    does not use yet, so those are allowed by default. Grammar tokens the
    lexer can never produce are not.
    """

    reject_unused_lexer_tokens: bool = False
    reject_grammar_tokens_missing_from_lexer: bool = True


@dataclass(frozen=True)
class TokenSyncReport:
    missing_from_lexer: frozenset[str]
    missing_from_parser: frozenset[str]

    def is_clean(self) -> bool:
        return not self.missing_from_lexer and not self.missing_from_parser


class TokenSyncError(Exception):
    def __init__(self, report: TokenSyncReport, msg: str):
        self.report = report
        self.msg = msg
        super().__init__(msg)


def sync_tokens(
    grammar: Grammar, lexer_tokens: Iterable[str], config: LexerSyncConfig | None = None
) -> TokenSyncReport:
    """Compares the tokens a lexer defines with the tokens a grammar uses.

    `missing_from_lexer` holds tokens used in the grammar but not defined in
    the lexer; `missing_from_parser` holds tokens defined in the lexer but
    not used in the grammar. Raises `TokenSyncError` when `config` rejects a
    non-empty difference.
    """
    config = config or LexerSyncConfig()
    lexer_tokens = set(lexer_tokens)
    used = grammar.referenced_token_names()

    report = TokenSyncReport(
        missing_from_lexer=frozenset(used - lexer_tokens),
        missing_from_parser=frozenset(lexer_tokens - used),
    )

    if config.reject_grammar_tokens_missing_from_lexer and report.missing_from_lexer:
        msg = "The following tokens are used in the grammar but are not defined in the lexer: " + ", ".join(
            sorted(report.missing_from_lexer)
        )
        logger.error("%s", msg)
        raise TokenSyncError(report, msg)
    if config.reject_unused_lexer_tokens and report.missing_from_parser:
        msg = "The following tokens are defined in the lexer but not used in the grammar: " + ", ".join(
            sorted(report.missing_from_parser)
        )
        logger.error("%s", msg)
        raise TokenSyncError(report, msg)

    if not report.is_clean():
        logger.debug(
            "Lexer/grammar token mismatch: %d missing from lexer, %d missing from parser",
            len(report.missing_from_lexer),
            len(report.missing_from_parser),
        )
    return report

from yacctools.ast import Alternative, AssocKind, GrammarAST, PrecedenceDecl, RuleDecl, RuleRef, TokenRef
from yacctools.diagnostics import Diagnostic, DiagnosticKind, Severity, ValidationReport
from yacctools.firsts import Firsts
from yacctools.follows import Follows
from yacctools.grammar import (
    EOF,
    Grammar,
    GrammarError,
    GrammarErrorKind,
    Precedence,
    Production,
    Rule,
    Symbol,
    SymbolKind,
    YaccKind,
)
from yacctools.lexsync import LexerSyncConfig, TokenSyncError, TokenSyncReport, sync_tokens
from yacctools.precedence import Action, PrecedenceTable, Resolution
from yacctools.sentence import NoDerivationError, SentenceGenerator
from yacctools.validate import Validator, validate

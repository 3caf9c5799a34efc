import logging
from dataclasses import dataclass
from enum import Enum

from yacctools.ast import AssocKind
from yacctools.diagnostics import Diagnostic, DiagnosticKind, Severity
from yacctools.follows import Follows
from yacctools.grammar import Grammar, Precedence, Production, Symbol


logger = logging.getLogger(__name__)


class Action(Enum):
    SHIFT = "shift"
    REDUCE = "reduce"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one parsing conflict.

    `action` is `None` when the conflict is genuinely ambiguous and is left
    undecided. Unresolved conflicts still carry the classical Yacc default
    in `action`, but `resolved` is `False` and `diagnostic` explains why.
    """

    action: Action | None
    production: Production | None = None
    resolved: bool = True
    diagnostic: Diagnostic | None = None


class PrecedenceTable:
    """Precedence of tokens and productions.

    A production takes the precedence named by its `%prec`, otherwise that
    of the rightmost terminal in its rhs which has a declared precedence.
    """

    def __init__(self, grammar: Grammar):
        self.grammar = grammar
        declared = grammar.declared_precedences
        self.tokens: list[Precedence | None] = [declared.get(t.name) for t in grammar.terminals]
        self.productions: list[Precedence | None] = [self.select(p) for p in grammar.productions]

    def select(self, production: Production) -> Precedence | None:
        if production.prec is not None:
            return self.grammar.declared_precedences.get(production.prec)
        for s in reversed(production.rhs):
            if s.is_terminal() and self.tokens[s.index] is not None:
                return self.tokens[s.index]
        return None

    def token_precedence(self, terminal: Symbol) -> Precedence | None:
        return self.tokens[terminal.index]

    def production_precedence(self, production: Production) -> Precedence | None:
        return self.productions[production.index]

    def resolve_shift_reduce(self, production: Production, lookahead: Symbol) -> Resolution:
        """Decides between reducing by `production` and shifting `lookahead`."""
        prod_prec = self.productions[production.index]
        token_prec = self.tokens[lookahead.index]

        if prod_prec is None or token_prec is None:
            diagnostic = Diagnostic(
                DiagnosticKind.UNRESOLVED_SHIFT_REDUCE,
                Severity.WARNING,
                f"Shift/reduce conflict between '{production}' and '{lookahead}' has no precedence to resolve it",
                symbol=production.lhs,
                production=production,
                token=lookahead,
            )
            logger.info("%s", diagnostic)
            return Resolution(Action.SHIFT, production, resolved=False, diagnostic=diagnostic)

        if token_prec.level > prod_prec.level:
            return Resolution(Action.SHIFT, production)
        if prod_prec.level > token_prec.level:
            return Resolution(Action.REDUCE, production)

        if prod_prec.assoc is AssocKind.LEFT:
            return Resolution(Action.REDUCE, production)
        if prod_prec.assoc is AssocKind.RIGHT:
            return Resolution(Action.SHIFT, production)

        diagnostic = self.nonassoc_diagnostic(production, lookahead)
        logger.warning("%s", diagnostic)
        return Resolution(None, production, resolved=False, diagnostic=diagnostic)

    def resolve_reduce_reduce(self, first: Production, second: Production) -> Resolution:
        earliest, latest = sorted((first, second), key=lambda p: p.index)
        diagnostic = Diagnostic(
            DiagnosticKind.REDUCE_REDUCE,
            Severity.WARNING,
            f"Reduce/reduce conflict between '{earliest}' and '{latest}', reducing by '{earliest}'",
            symbol=earliest.lhs,
            production=earliest,
        )
        logger.info("%s", diagnostic)
        return Resolution(Action.REDUCE, earliest, resolved=False, diagnostic=diagnostic)

    def nonassoc_diagnostic(self, production: Production, token: Symbol) -> Diagnostic:
        return Diagnostic(
            DiagnosticKind.AMBIGUOUS_NONASSOC,
            Severity.ERROR,
            f"'{production}' and '{token}' are non-associative at the same precedence level",
            symbol=production.lhs,
            production=production,
            token=token,
        )

    def ambiguities(self, follows: Follows) -> list[Diagnostic]:
        """Finds where equal-level non-associative tokens can meet.

        A production with `%nonassoc` precedence which ends in a nonterminal
        can be followed by a token at the same non-associative level, as in
        `a < b < c`. Each such pair is reported once.
        """
        found = []
        for p in self.grammar.productions:
            prec = self.productions[p.index]
            if prec is None or prec.assoc is not AssocKind.NONASSOC:
                continue
            if not p.rhs or not p.rhs[-1].is_nonterminal():
                continue
            for t in sorted(follows.follow_set(p.lhs)):
                if self.tokens[t] == prec:
                    found.append(self.nonassoc_diagnostic(p, self.grammar.terminal(t)))
        return found

    def used_precedences(self) -> set[str]:
        """Names of precedence-carrying tokens used in some production or `%prec`."""
        used = set()
        for p in self.grammar.productions:
            if p.prec is not None:
                used.add(p.prec)
            for s in p.rhs:
                if s.is_terminal() and self.tokens[s.index] is not None:
                    used.add(s.name)
        return used

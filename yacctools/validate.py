import logging
from functools import cached_property

import networkx as nx

from yacctools.diagnostics import Diagnostic, DiagnosticKind, Severity, ValidationReport
from yacctools.firsts import Firsts
from yacctools.follows import Follows
from yacctools.grammar import Grammar, Production, Symbol
from yacctools.precedence import PrecedenceTable


logger = logging.getLogger(__name__)


def reachable_nonterminals(grammar: Grammar) -> set[int]:
    """Nonterminals reachable from the augmented start production, including its lhs."""
    root = grammar.augmented_start.index
    return nx.descendants(grammar.graph, root) | {root}


def production_is_productive(production: Production, productive: set[int]) -> bool:
    return all(s.is_terminal() or s.index in productive for s in production.rhs)


def productive_nonterminals(grammar: Grammar) -> set[int]:
    """Nonterminals which derive at least one finite terminal string."""
    productive: set[int] = set()

    is_changing = True
    while is_changing:
        is_changing = False
        for p in grammar.productions:
            if p.lhs.index in productive:
                continue
            if production_is_productive(p, productive):
                productive.add(p.lhs.index)
                is_changing = True
    return productive


def is_defined(grammar: Grammar, symbol: Symbol) -> bool:
    table = grammar.terminals if symbol.is_terminal() else grammar.nonterminals
    return 0 <= symbol.index < len(table) and table[symbol.index] == symbol


class Validator:
    """Runs every structural check over a grammar and collects the findings.

    Every check runs regardless of what the others find, so one report
    surfaces all independent problems. The exception is a grammar with
    undefined symbols: the analyses indexed by symbol (reachability,
    productivity, precedence and FOLLOW) are then skipped, and the report
    holds the undefined symbols plus the checks which only look at names.
    """

    def __init__(
        self,
        grammar: Grammar,
        firsts: Firsts | None = None,
        follows: Follows | None = None,
        precedences: PrecedenceTable | None = None,
    ):
        self.grammar = grammar
        if firsts is not None:
            self.firsts = firsts
        if follows is not None:
            self.follows = follows
        if precedences is not None:
            self.precedences = precedences

    @cached_property
    def firsts(self) -> Firsts:
        return Firsts(self.grammar)

    @cached_property
    def follows(self) -> Follows:
        return Follows(self.grammar, self.firsts)

    @cached_property
    def precedences(self) -> PrecedenceTable:
        return PrecedenceTable(self.grammar)

    def validate(self) -> ValidationReport:
        found: list[Diagnostic] = self.undefined_symbols()
        if found:
            logger.debug("Skipping index based checks, %d undefined symbols", len(found))
            checks = (self.empty_rules, self.unused_terminals)
        else:
            checks = (
                self.empty_rules,
                self.unreachable_nonterminals,
                self.unproductive_nonterminals,
                self.unused_terminals,
                self.unused_precedences,
                self.ambiguous_nonassoc,
            )
        for check in checks:
            found.extend(check())

        for d in found:
            if d.is_error():
                logger.warning("%s", d)
            else:
                logger.info("%s", d)
        return ValidationReport(found)

    def undefined_symbols(self) -> list[Diagnostic]:
        found = []
        for p in self.grammar.productions:
            for s in (p.lhs,) + p.rhs:
                if not is_defined(self.grammar, s):
                    found.append(
                        Diagnostic(
                            DiagnosticKind.UNDEFINED_SYMBOL,
                            Severity.ERROR,
                            f"'{s}' in '{p}' is not declared",
                            symbol=s,
                            production=p,
                        )
                    )
        return found

    def empty_rules(self) -> list[Diagnostic]:
        return [
            Diagnostic(
                DiagnosticKind.EMPTY_RULE,
                Severity.ERROR,
                f"Rule '{r.lhs}' has no productions",
                symbol=r.lhs,
            )
            for r in self.grammar.rules
            if r.is_empty()
        ]

    def unreachable_nonterminals(self) -> list[Diagnostic]:
        reachable = reachable_nonterminals(self.grammar)
        return [
            Diagnostic(
                DiagnosticKind.UNREACHABLE_NONTERMINAL,
                Severity.WARNING,
                f"Rule '{nt}' is unreachable from '{self.grammar.start}'",
                symbol=nt,
            )
            for nt in self.grammar.nonterminals
            if nt.index not in reachable
        ]

    def unproductive_nonterminals(self) -> list[Diagnostic]:
        productive = productive_nonterminals(self.grammar)
        return [
            Diagnostic(
                DiagnosticKind.UNPRODUCTIVE_NONTERMINAL,
                Severity.ERROR,
                f"Rule '{nt}' can never derive a finite string of tokens",
                symbol=nt,
            )
            for nt in self.grammar.nonterminals
            if nt.index not in productive and not self.grammar.rule(nt).is_empty()
        ]

    def unused_terminals(self) -> list[Diagnostic]:
        used = self.grammar.referenced_token_names() | {
            p.prec for p in self.grammar.productions if p.prec is not None
        }
        return [
            Diagnostic(
                DiagnosticKind.UNUSED_TERMINAL,
                Severity.WARNING,
                f"Token '{t}' is declared but never used",
                symbol=t,
            )
            for t in self.grammar.terminals
            if t != self.grammar.eof and t.name not in used
        ]

    def unused_precedences(self) -> list[Diagnostic]:
        used = self.precedences.used_precedences()
        found = []
        for name, prec in self.grammar.declared_precedences.items():
            if name in used:
                continue
            found.append(
                Diagnostic(
                    DiagnosticKind.UNUSED_PRECEDENCE,
                    Severity.WARNING,
                    f"Precedence '{prec}' of '{name}' is never used",
                    symbol=self.grammar.symbol(name),
                )
            )
        return found

    def ambiguous_nonassoc(self) -> list[Diagnostic]:
        return self.precedences.ambiguities(self.follows)


def validate(
    grammar: Grammar,
    firsts: Firsts | None = None,
    follows: Follows | None = None,
    precedences: PrecedenceTable | None = None,
) -> ValidationReport:
    return Validator(grammar, firsts, follows, precedences).validate()

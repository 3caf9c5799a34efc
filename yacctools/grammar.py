import logging
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Iterator, Self

import networkx as nx

from yacctools.ast import AssocKind, GrammarAST, RuleRef, TokenRef


logger = logging.getLogger(__name__)

EOF = "$"
EPS = "ϵ"
IMPLICIT_RULE = "~"


class YaccKind(Enum):
    """The Yacc variant a grammar is written in.

    `ORIGINAL` is plain Yacc. `ECO` additionally accepts implicit tokens
    (typically whitespace and comments) which may appear before the start
    of the input and after any token.
    """

    ORIGINAL = "original"
    ECO = "eco"


class SymbolKind(Enum):
    TERMINAL = "terminal"
    NONTERMINAL = "nonterminal"


@dataclass(frozen=True)
class Symbol:
    kind: SymbolKind
    index: int
    name: str

    def is_terminal(self) -> bool:
        return self.kind is SymbolKind.TERMINAL

    def is_nonterminal(self) -> bool:
        return self.kind is SymbolKind.NONTERMINAL

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Precedence:
    level: int
    assoc: AssocKind

    def __str__(self) -> str:
        return f"{self.assoc.value}:{self.level}"


@dataclass(frozen=True)
class Production:
    index: int
    lhs: Symbol
    rhs: tuple[Symbol, ...]
    prec: str | None = None

    def is_empty(self) -> bool:
        return len(self.rhs) == 0

    def __len__(self) -> int:
        return len(self.rhs)

    def __str__(self) -> str:
        rhs = " ".join(s.name for s in self.rhs) if self.rhs else EPS
        return f"{self.lhs} → {rhs}"


@dataclass(frozen=True)
class Rule:
    lhs: Symbol
    productions: tuple[Production, ...]

    def is_empty(self) -> bool:
        return len(self.productions) == 0


class GrammarErrorKind(Enum):
    NO_START_RULE = "no start rule"
    DUPLICATE_RULE = "duplicate rule"
    CONFLICTING_START = "conflicting start declarations"
    INVALID_START_RULE = "invalid start rule"
    CLASHING_NAME = "clashing name"
    DUPLICATE_PRECEDENCE = "duplicate precedence"
    UNKNOWN_RULE_REF = "unknown rule reference"
    UNKNOWN_TOKEN = "unknown token"
    NO_PREC_FOR_TOKEN = "no precedence for token"
    UNKNOWN_EPP = "unknown epp token"
    INVALID_IMPLICIT_TOKENS = "invalid implicit tokens"


class GrammarError(Exception):
    def __init__(self, kind: GrammarErrorKind, name: str | None = None, msg: str = ""):
        self.kind = kind
        self.name = name
        self.msg = msg or kind.value
        super().__init__(self.msg)


def fresh_name(base: str, taken: set[str]) -> str:
    name = base
    while name in taken:
        name += "'"
    return name


class Grammar:
    """Immutable, densely indexed, augmented grammar.

    Terminals and nonterminals are indexed separately from 0. The last
    terminal is always the end-of-input marker and the last production is
    always the augmented start production `Start' → Start EOF`, whose lhs is
    the last nonterminal. Use `Grammar.from_ast` to build one.
    """

    def __init__(
        self,
        terminals: tuple[Symbol, ...],
        nonterminals: tuple[Symbol, ...],
        productions: tuple[Production, ...],
        start: Symbol,
        kind: YaccKind = YaccKind.ORIGINAL,
        precedences: dict[str, Precedence] | None = None,
        epp: dict[int, str] | None = None,
        implicit_rule: Symbol | None = None,
    ):
        self.kind = kind
        self.terminals = terminals
        self.nonterminals = nonterminals
        self.productions = productions
        self.start = start
        self.eof = terminals[-1]
        self.start_production = productions[-1]
        self.augmented_start = self.start_production.lhs
        self.implicit_rule = implicit_rule
        self.declared_precedences: dict[str, Precedence] = dict(precedences or {})
        self.epp: dict[int, str] = dict(epp or {})

        grouped: list[list[Production]] = [[] for _ in nonterminals]
        for p in productions:
            grouped[p.lhs.index].append(p)
        self.rules: tuple[Rule, ...] = tuple(
            Rule(lhs=nt, productions=tuple(prods)) for nt, prods in zip(nonterminals, grouped)
        )

        self._by_name: dict[str, Symbol] = {s.name: s for s in terminals + nonterminals}

    @classmethod
    def from_ast(cls, ast: GrammarAST, kind: YaccKind = YaccKind.ORIGINAL) -> Self:
        if not ast.rules:
            raise GrammarError(GrammarErrorKind.NO_START_RULE, msg="Grammar has no rules")

        rule_names: list[str] = []
        for r in ast.rules:
            if r.name in rule_names:
                raise GrammarError(
                    GrammarErrorKind.DUPLICATE_RULE, r.name, f"Rule '{r.name}' is defined more than once"
                )
            rule_names.append(r.name)

        start_name = Grammar.select_start(ast, rule_names)
        token_names = Grammar.select_tokens(ast, set(rule_names))
        precedences = Grammar.select_precedences(ast)

        taken = set(rule_names) | set(token_names)
        terminals = tuple(
            Symbol(SymbolKind.TERMINAL, i, name) for i, name in enumerate(token_names + [EOF])
        )
        nt_names = list(rule_names)
        # `%implicit_tokens` is checked once the productions are known
        has_implicit = kind is YaccKind.ECO and bool(ast.implicit_tokens)
        if has_implicit:
            nt_names.append(fresh_name(IMPLICIT_RULE, taken))
        nt_names.append(fresh_name(f"{start_name}'", taken | set(nt_names)))
        nonterminals = tuple(Symbol(SymbolKind.NONTERMINAL, i, name) for i, name in enumerate(nt_names))

        t_by_name = {t.name: t for t in terminals[:-1]}
        nt_by_name = {nt.name: nt for nt in nonterminals[: len(rule_names)]}
        implicit_rule = nonterminals[-2] if has_implicit else None

        productions: list[Production] = []

        def add(lhs: Symbol, rhs: list[Symbol], prec: str | None = None):
            productions.append(Production(len(productions), lhs, tuple(rhs), prec))

        for r in ast.rules:
            lhs = nt_by_name[r.name]
            for alt in r.alternatives:
                rhs: list[Symbol] = []
                for ref in alt.symbols:
                    if isinstance(ref, RuleRef):
                        if ref.name not in nt_by_name:
                            raise GrammarError(
                                GrammarErrorKind.UNKNOWN_RULE_REF,
                                ref.name,
                                f"Rule '{r.name}' references unknown rule '{ref.name}'",
                            )
                        rhs.append(nt_by_name[ref.name])
                    elif isinstance(ref, TokenRef):
                        if ref.name not in t_by_name:
                            raise GrammarError(
                                GrammarErrorKind.UNKNOWN_TOKEN,
                                ref.name,
                                f"Rule '{r.name}' references undeclared token '{ref.name}'",
                            )
                        rhs.append(t_by_name[ref.name])
                        if implicit_rule is not None:
                            rhs.append(implicit_rule)
                    else:
                        raise TypeError(f"Unexpected symbol reference {ref!r}")

                if alt.prec is not None and alt.prec not in precedences:
                    raise GrammarError(
                        GrammarErrorKind.NO_PREC_FOR_TOKEN,
                        alt.prec,
                        f"'%prec {alt.prec}' names a token with no declared precedence",
                    )
                add(lhs, rhs, alt.prec)

        epp = {}
        for name, text in ast.epp.items():
            if name not in t_by_name:
                raise GrammarError(
                    GrammarErrorKind.UNKNOWN_EPP, name, f"%epp given for undeclared token '{name}'"
                )
            epp[t_by_name[name].index] = text

        implicit_tokens = Grammar.select_implicit_tokens(ast, kind, token_names)
        if implicit_rule is not None:
            for name in implicit_tokens:
                add(implicit_rule, [t_by_name[name], implicit_rule])
            add(implicit_rule, [])

        start = nt_by_name[start_name]
        augmented = nonterminals[-1]
        add(augmented, ([implicit_rule] if implicit_rule else []) + [start, terminals[-1]])

        grammar = cls(
            terminals,
            nonterminals,
            tuple(productions),
            start,
            kind=kind,
            precedences=precedences,
            epp=epp,
            implicit_rule=implicit_rule,
        )
        logger.debug(
            "Built grammar: %d terminals, %d nonterminals, %d productions, start '%s'",
            grammar.terminal_count,
            grammar.nonterminal_count,
            grammar.production_count,
            start.name,
        )
        return grammar

    @staticmethod
    def select_start(ast: GrammarAST, rule_names: list[str]) -> str:
        starts = list(dict.fromkeys(ast.starts))
        if len(starts) > 1:
            raise GrammarError(
                GrammarErrorKind.CONFLICTING_START,
                starts[1],
                f"Conflicting %start declarations: {', '.join(starts)}",
            )
        if not starts:
            return rule_names[0]
        if starts[0] not in rule_names:
            raise GrammarError(
                GrammarErrorKind.INVALID_START_RULE, starts[0], f"Start rule '{starts[0]}' is not defined"
            )
        return starts[0]

    @staticmethod
    def select_tokens(ast: GrammarAST, rule_names: set[str]) -> list[str]:
        # `%left` and friends declare their tokens as well
        names = list(ast.tokens)
        for decl in ast.precedences:
            names.extend(decl.tokens)
        names = list(dict.fromkeys(names))

        for name in names:
            if name == EOF:
                raise GrammarError(
                    GrammarErrorKind.CLASHING_NAME, name, f"'{EOF}' is reserved for the end of input"
                )
            if name in rule_names:
                raise GrammarError(
                    GrammarErrorKind.CLASHING_NAME, name, f"'{name}' is both a token and a rule"
                )
        return names

    @staticmethod
    def select_precedences(ast: GrammarAST) -> dict[str, Precedence]:
        precedences: dict[str, Precedence] = {}
        for level, decl in enumerate(ast.precedences, start=1):
            for name in decl.tokens:
                if name in precedences:
                    raise GrammarError(
                        GrammarErrorKind.DUPLICATE_PRECEDENCE,
                        name,
                        f"Precedence for '{name}' is declared more than once",
                    )
                precedences[name] = Precedence(level, decl.assoc)
        return precedences

    @staticmethod
    def select_implicit_tokens(ast: GrammarAST, kind: YaccKind, token_names: list[str]) -> list[str]:
        if ast.implicit_tokens is None:
            return []
        if kind is not YaccKind.ECO:
            raise GrammarError(
                GrammarErrorKind.INVALID_IMPLICIT_TOKENS,
                msg="%implicit_tokens is only valid for Eco grammars",
            )
        for name in ast.implicit_tokens:
            if name not in token_names:
                raise GrammarError(
                    GrammarErrorKind.INVALID_IMPLICIT_TOKENS,
                    name,
                    f"Implicit token '{name}' is not declared",
                )
        return list(dict.fromkeys(ast.implicit_tokens))

    @property
    def terminal_count(self) -> int:
        return len(self.terminals)

    @property
    def nonterminal_count(self) -> int:
        return len(self.nonterminals)

    @property
    def production_count(self) -> int:
        return len(self.productions)

    def symbol(self, name: str) -> Symbol:
        return self._by_name[name]

    def terminal(self, index: int) -> Symbol:
        return self.terminals[index]

    def nonterminal(self, index: int) -> Symbol:
        return self.nonterminals[index]

    def production(self, index: int) -> Production:
        return self.productions[index]

    def rule(self, nonterminal: Symbol | int) -> Rule:
        if isinstance(nonterminal, Symbol):
            if not nonterminal.is_nonterminal():
                raise TypeError(f"'{nonterminal}' is a terminal")
            nonterminal = nonterminal.index
        return self.rules[nonterminal]

    def productions_of(self, nonterminal: Symbol | int) -> Iterator[Production]:
        yield from self.rule(nonterminal).productions

    def token_names(self) -> set[str]:
        return {t.name for t in self.terminals if t != self.eof}

    def referenced_token_names(self) -> set[str]:
        return {
            s.name for p in self.productions for s in p.rhs if s.is_terminal() and s != self.eof
        }

    def token_ids_map(self) -> dict[str, int]:
        return {t.name: t.index for t in self.terminals if t != self.eof}

    def token_epp(self, terminal: Symbol) -> str:
        """Returns the text to show for `terminal` in error messages."""
        return self.epp.get(terminal.index, terminal.name)

    @cached_property
    def graph(self) -> nx.DiGraph:
        graph = nx.DiGraph()
        for nt in self.nonterminals:
            graph.add_node(nt.index, name=nt.name)
        for p in self.productions:
            for s in p.rhs:
                if s.is_nonterminal():
                    graph.add_edge(p.lhs.index, s.index)
        return graph

    def has_path(self, source: Symbol, target: Symbol) -> bool:
        """Can `target` occur in a sentential form derived from `source`?

        At least one derivation step is required, so a rule only has a path
        to itself when it is recursive.
        """
        return any(nx.has_path(self.graph, n, target.index) for n in self.graph.successors(source.index))

    def __str__(self) -> str:
        return "\n".join(str(p) for p in self.productions)

    def __repr__(self) -> str:
        return (
            f"Grammar(start={self.start.name!r}, terminals={self.terminal_count}, "
            f"nonterminals={self.nonterminal_count}, productions={self.production_count})"
        )

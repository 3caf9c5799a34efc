import logging
from pprint import pformat
from typing import Iterable, Sequence

import pandas as pd

from yacctools.grammar import EPS, Grammar, Symbol


logger = logging.getLogger(__name__)


class Firsts:
    """FIRST sets and nullability of every symbol in a grammar.

    Sets hold terminal indices. Terminals are never nullable and
    FIRST(t) = {t}, so only nonterminals are stored.
    """

    def __init__(self, grammar: Grammar):
        self.grammar = grammar
        firsts, nullable = Firsts.build(grammar)
        self.firsts: list[frozenset[int]] = [frozenset(f) for f in firsts]
        self.nullable: list[bool] = nullable

    def __getitem__(self, symbols: Sequence[Symbol]) -> frozenset[int]:
        return self.first_set_of_sequence(symbols)[0]

    def first_set(self, symbol: Symbol) -> tuple[frozenset[int], bool]:
        if symbol.is_terminal():
            return frozenset({symbol.index}), False
        return self.firsts[symbol.index], self.nullable[symbol.index]

    def first_set_of_sequence(self, symbols: Iterable[Symbol]) -> tuple[frozenset[int], bool]:
        """Returns FIRST of `symbols` and whether the whole sequence is nullable.

        The scan stops at the first symbol which isn't nullable. An empty
        sequence is nullable with an empty FIRST set.
        """
        first: set[int] = set()
        for s in symbols:
            f, nullable = self.first_set(s)
            first |= f
            if not nullable:
                return frozenset(first), False
        return frozenset(first), True

    def is_nullable(self, symbol: Symbol) -> bool:
        return symbol.is_nonterminal() and self.nullable[symbol.index]

    @staticmethod
    def build(grammar: Grammar) -> tuple[list[set[int]], list[bool]]:
        first: list[set[int]] = [set() for _ in grammar.nonterminals]
        nullable = [False] * grammar.nonterminal_count

        passes = 0
        is_changing = True
        while is_changing:
            is_changing = False
            passes += 1
            for p in grammar.productions:
                lhs = p.lhs.index
                rhs: set[int] = set()
                trailing = True

                for s in p.rhs:
                    if s.is_terminal():
                        rhs.add(s.index)
                        trailing = False
                        break
                    rhs |= first[s.index]
                    if not nullable[s.index]:
                        trailing = False
                        break

                if not rhs <= first[lhs]:
                    first[lhs] |= rhs
                    is_changing = True
                if trailing and not nullable[lhs]:
                    nullable[lhs] = True
                    is_changing = True

        logger.debug("FIRST sets converged after %d passes", passes)
        return first, nullable

    def to_frame(self) -> pd.DataFrame:
        """Returns a nonterminal × terminal table, with an extra `ϵ` column for nullability."""
        g = self.grammar
        columns = [t.name for t in g.terminals]
        records = []
        for nt in g.nonterminals:
            record = {t.name: t.index in self.firsts[nt.index] for t in g.terminals}
            record[EPS] = self.nullable[nt.index]
            records.append(record)
        df = pd.DataFrame(records, index=[nt.name for nt in g.nonterminals])
        return df[columns + [EPS]]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Firsts):
            return NotImplemented
        return self.firsts == other.firsts and self.nullable == other.nullable

    def __str__(self) -> str:
        g = self.grammar
        named = {
            nt.name: sorted(g.terminals[t].name for t in self.firsts[nt.index])
            + ([EPS] if self.nullable[nt.index] else [])
            for nt in g.nonterminals
        }
        return pformat(named)

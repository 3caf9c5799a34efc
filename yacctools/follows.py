import logging
from pprint import pformat

import pandas as pd

from yacctools.firsts import Firsts
from yacctools.grammar import Grammar, Symbol


logger = logging.getLogger(__name__)


class Follows:
    """FOLLOW sets of every nonterminal, as sets of terminal indices.

    FOLLOW(start) always holds the end-of-input terminal. The augmented
    start nonterminal is never followed by anything.
    """

    def __init__(self, grammar: Grammar, firsts: Firsts | None = None):
        self.grammar = grammar
        self.firsts = firsts if firsts is not None else Firsts(grammar)
        self.follows: list[frozenset[int]] = [frozenset(f) for f in Follows.build(grammar, self.firsts)]

    def __getitem__(self, nonterminal: Symbol) -> frozenset[int]:
        return self.follow_set(nonterminal)

    def follow_set(self, nonterminal: Symbol) -> frozenset[int]:
        if not nonterminal.is_nonterminal():
            raise TypeError(f"FOLLOW is only defined for nonterminals, not '{nonterminal}'")
        return self.follows[nonterminal.index]

    @staticmethod
    def build(grammar: Grammar, firsts: Firsts) -> list[set[int]]:
        follow: list[set[int]] = [set() for _ in grammar.nonterminals]
        follow[grammar.start.index].add(grammar.eof.index)

        passes = 0
        is_changing = True
        while is_changing:
            is_changing = False
            passes += 1
            for p in grammar.productions:
                for i, s in enumerate(p.rhs):
                    if not s.is_nonterminal():
                        continue
                    suffix, nullable = firsts.first_set_of_sequence(p.rhs[i + 1 :])
                    new = set(suffix)
                    if nullable:
                        new |= follow[p.lhs.index]
                    if not new <= follow[s.index]:
                        follow[s.index] |= new
                        is_changing = True

        logger.debug("FOLLOW sets converged after %d passes", passes)
        return follow

    def to_frame(self) -> pd.DataFrame:
        g = self.grammar
        records = [{t.name: t.index in self.follows[nt.index] for t in g.terminals} for nt in g.nonterminals]
        df = pd.DataFrame(records, index=[nt.name for nt in g.nonterminals])
        return df[[t.name for t in g.terminals]]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Follows):
            return NotImplemented
        return self.follows == other.follows

    def __str__(self) -> str:
        g = self.grammar
        return pformat(
            {nt.name: sorted(g.terminals[t].name for t in self.follows[nt.index]) for nt in g.nonterminals}
        )

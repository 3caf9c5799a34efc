import logging
import math
import random
from typing import Callable, Iterator, Mapping

import networkx as nx

from yacctools.firsts import Firsts
from yacctools.grammar import Grammar, Production, Symbol
from yacctools.tree import DerivationNode
from yacctools.validate import production_is_productive, productive_nonterminals


logger = logging.getLogger(__name__)

DEFAULT_MAX_EXPANSIONS = 100


class NoDerivationError(ValueError):
    def __init__(self, nonterminal: Symbol):
        self.nonterminal = nonterminal
        super().__init__(f"'{nonterminal}' cannot derive a finite string of tokens")


def default_token_cost(terminal: Symbol) -> int:
    return 1


class SentenceGenerator:
    """Random and minimal sentences of a grammar.

    Random generation is bounded by `max_expansions`, the number of
    productions applied per sentence. Before each expansion the generator
    reserves the fewest expansions still needed by the pending
    nonterminals, and only picks productions that fit in what is left. When
    none fits, the production with the fewest expansions is forced, so a
    sentence never takes more than `max(max_expansions, fewest expansions
    of the nonterminal)` expansions.

    Args:
        * `weights` - relative weight per production index, default 1. Weights
          must not be negative. When every production that fits the budget
          weighs 0, one of them is picked uniformly
        * `seed` - seed used when no `random.Random` is passed in
        * `token_cost` - cost of a token for the minimal sentence queries
    """

    def __init__(
        self,
        grammar: Grammar,
        firsts: Firsts | None = None,
        max_expansions: int = DEFAULT_MAX_EXPANSIONS,
        weights: Mapping[int, float] | None = None,
        seed: int | None = None,
        token_cost: Callable[[Symbol], int] | None = None,
    ):
        if max_expansions < 0:
            raise ValueError(f"max_expansions must not be negative, got {max_expansions}")
        if weights and any(w < 0 for w in weights.values()):
            raise ValueError("Production weights must not be negative")
        self.grammar = grammar
        self.firsts = firsts if firsts is not None else Firsts(grammar)
        self.max_expansions = max_expansions
        self.weights = dict(weights or {})
        self.seed = seed
        self.token_cost = token_cost or default_token_cost

        self.productive = productive_nonterminals(grammar)
        self.expansions: list[float] = SentenceGenerator.build_expansions(grammar)
        self.costs: list[tuple[float, float]] = SentenceGenerator.build_costs(grammar, self.token_cost)

    @staticmethod
    def build_expansions(grammar: Grammar) -> list[float]:
        """Fewest productions needed to derive a token string from each nonterminal."""
        expansions = [math.inf] * grammar.nonterminal_count

        is_changing = True
        while is_changing:
            is_changing = False
            for p in grammar.productions:
                c = 1 + sum(expansions[s.index] for s in p.rhs if s.is_nonterminal())
                if c < expansions[p.lhs.index]:
                    expansions[p.lhs.index] = c
                    is_changing = True
        return expansions

    @staticmethod
    def build_costs(grammar: Grammar, token_cost: Callable[[Symbol], int]) -> list[tuple[float, float]]:
        """Cheapest (token cost, expansions) pair per nonterminal, compared in that order."""
        for t in grammar.terminals:
            if token_cost(t) < 0:
                raise ValueError(f"Cost of token '{t}' must not be negative")

        costs: list[tuple[float, float]] = [(math.inf, math.inf)] * grammar.nonterminal_count

        is_changing = True
        while is_changing:
            is_changing = False
            for p in grammar.productions:
                c = SentenceGenerator.production_cost(p, costs, token_cost)
                if c < costs[p.lhs.index]:
                    costs[p.lhs.index] = c
                    is_changing = True
        return costs

    @staticmethod
    def production_cost(
        production: Production, costs: list[tuple[float, float]], token_cost: Callable[[Symbol], int]
    ) -> tuple[float, float]:
        sentence, expansions = 0, 1
        for s in production.rhs:
            if s.is_terminal():
                sentence += token_cost(s)
            else:
                sentence += costs[s.index][0]
                expansions += costs[s.index][1]
        return sentence, expansions

    def pending(self, production: Production) -> float:
        return sum(self.expansions[s.index] for s in production.rhs if s.is_nonterminal())

    def choose(self, nonterminal: Symbol, allowance: float, rng: random.Random) -> Production:
        productions = [
            p for p in self.grammar.productions_of(nonterminal) if production_is_productive(p, self.productive)
        ]
        candidates = [p for p in productions if 1 + self.pending(p) <= allowance]
        if not candidates:
            return min(productions, key=lambda p: (self.pending(p), p.index))

        weights = [self.weights.get(p.index, 1.0) for p in candidates]
        if self.weights and sum(weights) > 0:
            return rng.choices(candidates, weights)[0]
        return rng.choice(candidates)

    def check(self, nonterminal: Symbol):
        if not nonterminal.is_nonterminal():
            raise TypeError(f"'{nonterminal}' is a terminal")
        if nonterminal.index not in self.productive:
            raise NoDerivationError(nonterminal)

    def generate_tree(self, nonterminal: Symbol, rng: random.Random | None = None) -> DerivationNode:
        """Derives a random sentence from `nonterminal`, depth first and left to right.

        Raises `NoDerivationError` when `nonterminal` is unproductive.
        """
        self.check(nonterminal)
        if rng is None:
            rng = random.Random(self.seed)

        root = DerivationNode(nonterminal)
        stack = [root]
        remaining = self.max_expansions
        reserved = self.expansions[nonterminal.index]

        while stack:
            node = stack.pop()
            if node.symbol.is_terminal():
                continue

            reserved -= self.expansions[node.symbol.index]
            production = self.choose(node.symbol, remaining - reserved, rng)
            remaining -= 1
            reserved += self.pending(production)

            node.production = production
            node.children = [DerivationNode(s) for s in production.rhs]
            stack.extend(reversed(node.children))

        return root

    def generate(self, nonterminal: Symbol, rng: random.Random | None = None) -> list[Symbol]:
        return self.generate_tree(nonterminal, rng).leaves()

    def sentences(self, nonterminal: Symbol, count: int | None = None) -> Iterator[list[Symbol]]:
        """Lazily yields `count` sentences, or an endless stream when `count` is `None`.

        Every call starts a new stream from `seed`, so a seeded stream can be
        replayed by calling this again.
        """
        self.check(nonterminal)
        rng = random.Random(self.seed)
        produced = 0
        while count is None or produced < count:
            yield self.generate(nonterminal, rng)
            produced += 1

    def min_sentence_cost(self, nonterminal: Symbol) -> int:
        self.check(nonterminal)
        if self.firsts.is_nullable(nonterminal):
            return 0
        return int(self.costs[nonterminal.index][0])

    def min_sentence(self, nonterminal: Symbol) -> list[Symbol]:
        """Returns one cheapest sentence of `nonterminal`. Ties go to the earliest production."""
        self.check(nonterminal)
        if self.firsts.is_nullable(nonterminal):
            return []

        out = []
        stack = [nonterminal]
        while stack:
            s = stack.pop()
            if s.is_terminal():
                out.append(s)
                continue
            best = min(
                self.grammar.productions_of(s),
                key=lambda p: (SentenceGenerator.production_cost(p, self.costs, self.token_cost), p.index),
            )
            stack.extend(reversed(best.rhs))
        return out

    def max_sentence_cost(self, nonterminal: Symbol) -> int | None:
        """Returns the cost of the most expensive sentence, or `None` if sentences are unbounded.

        Any recursion reachable from `nonterminal` through productive
        productions counts as unbounded.
        """
        self.check(nonterminal)
        graph = nx.DiGraph()
        graph.add_nodes_from(self.productive)
        for p in self.grammar.productions:
            if p.lhs.index in self.productive and production_is_productive(p, self.productive):
                for s in p.rhs:
                    if s.is_nonterminal():
                        graph.add_edge(p.lhs.index, s.index)

        reachable = graph.subgraph(nx.descendants(graph, nonterminal.index) | {nonterminal.index})
        if not nx.is_directed_acyclic_graph(reachable):
            logger.debug("'%s' is recursive: its sentences are unbounded", nonterminal)
            return None

        maximum: dict[int, int] = {}
        for nt in reversed(list(nx.topological_sort(reachable))):
            best = 0
            for p in self.grammar.productions_of(nt):
                if not production_is_productive(p, self.productive):
                    continue
                c = sum(self.token_cost(s) if s.is_terminal() else maximum[s.index] for s in p.rhs)
                best = max(best, c)
            maximum[nt] = best
        return maximum[nonterminal.index]

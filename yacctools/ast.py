from dataclasses import dataclass, field
from enum import Enum
from typing import Self


class AssocKind(Enum):
    LEFT = "left"
    RIGHT = "right"
    NONASSOC = "nonassoc"


@dataclass(frozen=True)
class RuleRef:
    name: str


@dataclass(frozen=True)
class TokenRef:
    name: str


@dataclass
class Alternative:
    symbols: list[RuleRef | TokenRef] = field(default_factory=list)
    prec: str | None = None


@dataclass
class RuleDecl:
    name: str
    alternatives: list[Alternative] = field(default_factory=list)


@dataclass
class PrecedenceDecl:
    """One `%left`, `%right` or `%nonassoc` line."""

    assoc: AssocKind
    tokens: list[str]


@dataclass
class GrammarAST:
    """Grammar as handed over by the textual grammar parser.

    Args:
        * `rules` - rules in declaration order
        * `tokens` - declared token names (`%token` and quoted literals) in order
        * `precedences` - precedence lines, lowest precedence first
        * `starts` - every `%start` declaration seen, in order
        * `implicit_tokens` - `%implicit_tokens`, only meaningful for Eco grammars
        * `epp` - `%epp` error pretty-print text per token name
    """

    rules: list[RuleDecl] = field(default_factory=list)
    tokens: list[str] = field(default_factory=list)
    precedences: list[PrecedenceDecl] = field(default_factory=list)
    starts: list[str] = field(default_factory=list)
    implicit_tokens: list[str] | None = None
    epp: dict[str, str] = field(default_factory=dict)

    def add_rule(self, name: str, *alternatives: list[RuleRef | TokenRef] | Alternative) -> Self:
        alts = [a if isinstance(a, Alternative) else Alternative(list(a)) for a in alternatives]
        self.rules.append(RuleDecl(name, alts))
        return self

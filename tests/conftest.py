import matplotlib

matplotlib.use("Agg")

import pytest

from yacctools.ast import Alternative, AssocKind, GrammarAST, PrecedenceDecl, RuleRef, TokenRef
from yacctools.grammar import Grammar, YaccKind


def build_ast(
    rules: dict[str, list[str]],
    tokens: list[str],
    precedences: list[tuple[AssocKind, list[str]]] = (),
    start: str | None = None,
) -> GrammarAST:
    """Builds an AST from `{"A": ["B 'x' C", ""]}`-style rules.

    Names listed in `tokens` or in `precedences` are token references, every
    other name is a rule reference, `""` is an epsilon alternative and a
    trailing `%prec NAME` sets the alternative's precedence.
    """
    names = set(tokens)
    for _, ts in precedences:
        names.update(ts)

    ast = GrammarAST(
        tokens=list(tokens),
        precedences=[PrecedenceDecl(assoc, list(ts)) for assoc, ts in precedences],
        starts=[start] if start else [],
    )
    for name, alternatives in rules.items():
        alts = []
        for text in alternatives:
            words = text.split()
            prec = None
            if "%prec" in words:
                i = words.index("%prec")
                prec = words[i + 1]
                words = words[:i]
            alts.append(Alternative([TokenRef(w) if w in names else RuleRef(w) for w in words], prec))
        ast.add_rule(name, *alts)
    return ast


def build_grammar(*args, kind: YaccKind = YaccKind.ORIGINAL, **kwargs) -> Grammar:
    return Grammar.from_ast(build_ast(*args, **kwargs), kind=kind)


@pytest.fixture
def make_grammar():
    return build_grammar


@pytest.fixture
def brackets() -> Grammar:
    return build_grammar(
        {
            "goal": ["list"],
            "list": ["list pair", "pair"],
            "pair": ["( list )", "( )"],
        },
        tokens=["(", ")"],
    )


@pytest.fixture
def math() -> Grammar:
    return build_grammar(
        {
            "goal": ["expr"],
            "expr": ["expr + term", "expr - term", "term"],
            "term": ["term * factor", "term / factor", "factor"],
            "factor": ["( expr )", "n"],
        },
        tokens=["+", "-", "*", "/", "(", ")", "n"],
    )


@pytest.fixture
def empty() -> Grammar:
    return build_grammar(
        {
            "goal": ["A"],
            "A": ["A a", "a", ""],
        },
        tokens=["a"],
    )


@pytest.fixture
def calc() -> Grammar:
    return build_grammar(
        {"E": ["E + E", "E * E", "num"]},
        tokens=["num"],
        precedences=[(AssocKind.LEFT, ["+"]), (AssocKind.LEFT, ["*"])],
    )


@pytest.fixture
def nullable_chain() -> Grammar:
    return build_grammar(
        {
            "S": ["A B c", "d S"],
            "A": ["a A", ""],
            "B": ["A", "b"],
        },
        tokens=["a", "b", "c", "d"],
    )


@pytest.fixture
def eco() -> Grammar:
    # whitespace may follow any token and lead the input
    ast = build_ast({"S": ["a S", "b"]}, tokens=["a", "b", "ws"])
    ast.implicit_tokens = ["ws"]
    return Grammar.from_ast(ast, kind=YaccKind.ECO)

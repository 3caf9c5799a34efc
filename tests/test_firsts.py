import pytest

from yacctools.firsts import Firsts
from yacctools.grammar import EPS

from derivations import derives_empty, sentences


def names(grammar, indices) -> set[str]:
    return {grammar.terminal(i).name for i in indices}


def test_math(math):
    first = Firsts(math)
    for nt in math.nonterminals:
        f, nullable = first.first_set(nt)
        assert names(math, f) == {"(", "n"}
        assert not nullable


def test_terminal_first_set(math):
    first = Firsts(math)
    plus = math.symbol("+")
    assert first.first_set(plus) == (frozenset({plus.index}), False)
    assert not first.is_nullable(plus)


def test_left_recursive_operators(calc):
    first = Firsts(calc)
    f, nullable = first.first_set(calc.symbol("E"))
    assert names(calc, f) == {"num"}
    assert not nullable


def test_epsilon_rule(empty):
    first = Firsts(empty)
    a = empty.symbol("A")
    assert names(empty, first.first_set(a)[0]) == {"a"}
    assert first.is_nullable(a)
    assert first.is_nullable(empty.symbol("goal"))

    f, nullable = first.first_set(empty.augmented_start)
    assert names(empty, f) == {"a", "$"}
    assert not nullable


def test_only_epsilon(make_grammar):
    g = make_grammar({"S": ["A x"], "A": [""]}, tokens=["x"])
    first = Firsts(g)
    assert first.first_set(g.symbol("A")) == (frozenset(), True)
    assert names(g, first.first_set(g.symbol("S"))[0]) == {"x"}


def test_nullable_chain(nullable_chain):
    g = nullable_chain
    first = Firsts(g)
    assert names(g, first.first_set(g.symbol("A"))[0]) == {"a"}
    assert names(g, first.first_set(g.symbol("B"))[0]) == {"a", "b"}
    assert names(g, first.first_set(g.symbol("S"))[0]) == {"a", "b", "c", "d"}
    assert [first.is_nullable(g.symbol(n)) for n in ("S", "A", "B")] == [False, True, True]


def test_implicit_rule(eco):
    first = Firsts(eco)
    assert names(eco, first.first_set(eco.symbol("~"))[0]) == {"ws"}
    assert first.is_nullable(eco.symbol("~"))
    assert names(eco, first.first_set(eco.augmented_start)[0]) == {"ws", "a", "b"}


def test_sequence(nullable_chain):
    g = nullable_chain
    first = Firsts(g)
    a, b, c = g.symbol("A"), g.symbol("B"), g.symbol("c")

    f, nullable = first.first_set_of_sequence([a, b])
    assert names(g, f) == {"a", "b"}
    assert nullable

    f, nullable = first.first_set_of_sequence([a, c, b])
    assert names(g, f) == {"a", "c"}
    assert not nullable

    assert first.first_set_of_sequence([]) == (frozenset(), True)
    assert names(g, first[[b, c]]) == {"a", "b", "c"}


def test_unproductive_cycle_converges(make_grammar):
    g = make_grammar({"S": ["A", "s"], "A": ["B"], "B": ["A"]}, tokens=["s"])
    first = Firsts(g)
    assert first.first_set(g.symbol("A")) == (frozenset(), False)


@pytest.mark.parametrize("fixture", ["brackets", "math", "empty", "calc", "nullable_chain", "eco"])
def test_idempotent(fixture, request):
    grammar = request.getfixturevalue(fixture)
    assert Firsts(grammar) == Firsts(grammar)
    assert Firsts.build(grammar) == Firsts.build(grammar)


@pytest.mark.parametrize("fixture", ["brackets", "math", "empty", "calc", "nullable_chain", "eco"])
def test_agrees_with_brute_force(fixture, request):
    grammar = request.getfixturevalue(fixture)
    first = Firsts(grammar)
    for nt in grammar.nonterminals:
        found = sentences(grammar, nt, 5)
        f, nullable = first.first_set(nt)
        assert {s[0].index for s in found if s} == f, nt.name
        assert nullable == derives_empty(grammar, nt, 5), nt.name


def test_to_frame(empty):
    df = Firsts(empty).to_frame()
    assert list(df.index) == ["goal", "A", "goal'"]
    assert list(df.columns) == ["a", "$", EPS]
    assert df.loc["A", "a"]
    assert df.loc["A", EPS]
    assert not df.loc["A", "$"]
    assert df.loc["goal'", "$"]
    assert not df.loc["goal'", EPS]


def test_str(empty):
    assert str(Firsts(empty)) == "{'A': ['a', 'ϵ'], 'goal': ['a', 'ϵ'], \"goal'\": ['$', 'a']}"

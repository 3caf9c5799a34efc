from yacctools.ast import AssocKind
from yacctools.diagnostics import DiagnosticKind, Severity
from yacctools.follows import Follows
from yacctools.grammar import Precedence
from yacctools.precedence import Action, PrecedenceTable


def production(grammar, text):
    return next(p for p in grammar.productions if str(p) == text)


def test_production_precedence(calc):
    table = PrecedenceTable(calc)
    assert table.production_precedence(production(calc, "E → E + E")) == Precedence(1, AssocKind.LEFT)
    assert table.production_precedence(production(calc, "E → E * E")) == Precedence(2, AssocKind.LEFT)
    assert table.production_precedence(production(calc, "E → num")) is None
    assert table.token_precedence(calc.symbol("num")) is None
    assert table.token_precedence(calc.symbol("*")) == Precedence(2, AssocKind.LEFT)


def test_higher_token_shifts(calc):
    table = PrecedenceTable(calc)
    r = table.resolve_shift_reduce(production(calc, "E → E + E"), calc.symbol("*"))
    assert r.action is Action.SHIFT
    assert r.resolved
    assert r.diagnostic is None


def test_higher_production_reduces(calc):
    table = PrecedenceTable(calc)
    r = table.resolve_shift_reduce(production(calc, "E → E * E"), calc.symbol("+"))
    assert r.action is Action.REDUCE
    assert r.resolved


def test_left_associative_reduces(calc):
    table = PrecedenceTable(calc)
    plus = production(calc, "E → E + E")
    r = table.resolve_shift_reduce(plus, calc.symbol("+"))
    assert r.action is Action.REDUCE
    assert r.production is plus


def test_right_associative_shifts(make_grammar):
    g = make_grammar({"E": ["E ^ E", "num"]}, tokens=["num"], precedences=[(AssocKind.RIGHT, ["^"])])
    r = PrecedenceTable(g).resolve_shift_reduce(production(g, "E → E ^ E"), g.symbol("^"))
    assert r.action is Action.SHIFT
    assert r.resolved


def test_nonassoc_is_left_undecided(make_grammar):
    g = make_grammar({"E": ["E < E", "num"]}, tokens=["num"], precedences=[(AssocKind.NONASSOC, ["<"])])
    table = PrecedenceTable(g)
    lt = production(g, "E → E < E")

    r = table.resolve_shift_reduce(lt, g.symbol("<"))
    assert r.action is None
    assert not r.resolved
    assert r.diagnostic.kind is DiagnosticKind.AMBIGUOUS_NONASSOC
    assert r.diagnostic.severity is Severity.ERROR
    assert r.diagnostic.production is lt
    assert r.diagnostic.token == g.symbol("<")

    found = table.ambiguities(Follows(g))
    assert [(d.production, d.token) for d in found] == [(lt, g.symbol("<"))]


def test_nonassoc_at_different_levels(make_grammar):
    g = make_grammar(
        {"E": ["E < E", "E = E", "num"]},
        tokens=["num"],
        precedences=[(AssocKind.NONASSOC, ["<"]), (AssocKind.NONASSOC, ["="])],
    )
    table = PrecedenceTable(g)
    assert table.resolve_shift_reduce(production(g, "E → E < E"), g.symbol("=")).action is Action.SHIFT
    assert table.resolve_shift_reduce(production(g, "E → E = E"), g.symbol("<")).action is Action.REDUCE
    assert [d.token.name for d in table.ambiguities(Follows(g))] == ["<", "="]


def test_missing_precedence_is_reported(math):
    table = PrecedenceTable(math)
    r = table.resolve_shift_reduce(production(math, "expr → expr + term"), math.symbol("*"))
    assert r.action is Action.SHIFT
    assert not r.resolved
    assert r.diagnostic.kind is DiagnosticKind.UNRESOLVED_SHIFT_REDUCE
    assert r.diagnostic.severity is Severity.WARNING


def test_reduce_reduce_prefers_earliest(make_grammar):
    g = make_grammar({"S": ["A", "B"], "A": ["x"], "B": ["x"]}, tokens=["x"])
    table = PrecedenceTable(g)
    a, b = production(g, "A → x"), production(g, "B → x")

    for r in (table.resolve_reduce_reduce(a, b), table.resolve_reduce_reduce(b, a)):
        assert r.action is Action.REDUCE
        assert r.production is a
        assert not r.resolved
        assert r.diagnostic.kind is DiagnosticKind.REDUCE_REDUCE


def test_prec_overrides_rightmost_token(make_grammar):
    g = make_grammar(
        {"E": ["E - E", "- E %prec UMINUS", "num"]},
        tokens=["num"],
        precedences=[(AssocKind.LEFT, ["-"]), (AssocKind.RIGHT, ["UMINUS"])],
    )
    table = PrecedenceTable(g)
    assert table.production_precedence(production(g, "E → E - E")) == Precedence(1, AssocKind.LEFT)
    neg = production(g, "E → - E")
    assert neg.prec == "UMINUS"
    assert table.production_precedence(neg) == Precedence(2, AssocKind.RIGHT)
    assert table.resolve_shift_reduce(neg, g.symbol("-")).action is Action.REDUCE


def test_rightmost_token_with_precedence(make_grammar):
    g = make_grammar(
        {"E": ["E + E !", "num"]},
        tokens=["num", "!"],
        precedences=[(AssocKind.LEFT, ["+"])],
    )
    table = PrecedenceTable(g)
    assert table.production_precedence(production(g, "E → E + E !")) == Precedence(1, AssocKind.LEFT)


def test_used_precedences(make_grammar):
    g = make_grammar(
        {"E": ["- E %prec UMINUS", "num"]},
        tokens=["num"],
        precedences=[(AssocKind.LEFT, ["-", "+"]), (AssocKind.RIGHT, ["UMINUS"])],
    )
    assert PrecedenceTable(g).used_precedences() == {"-", "UMINUS"}

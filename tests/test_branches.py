from hypothesis import given, settings
from hypothesis import strategies as st

from rdgen.grammar.ast import Grammar, ProductRule, BranchRule, BranchVariant, Terminal
from rdgen.grammar.check import collect_warnings
from rdgen.analysis.symbols import SymbolTable
from rdgen.analysis.tokens import TokenMap
from rdgen.analysis.first_follow import compute_nullable_first_follow
from rdgen.analysis.branches import BranchCase, decide_all


def test_single_token_decides(pipeline):
    p = pipeline("""
        branch Top { A B }
        product A { "let" }
        product B { "fn" }
    """)
    d = p.decisions["Top"]
    assert d.judgeable_at0 == (
        BranchCase("B", "Keyword::Fn"),
        BranchCase("A", "Keyword::Let"),
    )
    assert d.judgeable_at1 == ()
    assert d.fallback_at1 == ()
    assert d.needs_backtrack == ()
    assert d.expected_terminals == ("Keyword::Fn", "Keyword::Let")


def test_second_token_with_fallback(pipeline):
    p = pipeline("""
        branch Type { IntNormal IntDouble }
        product IntNormal { "Int" }
        product IntDouble { "Int" "Double" }
    """)
    d = p.decisions["Type"]
    assert d.judgeable_at0 == ()
    assert d.judgeable_at1 == (BranchCase("IntDouble", "Keyword::Int", "Keyword::DoubleInt"),)
    assert d.fallback_at1 == (BranchCase("IntNormal", "Keyword::Int"),)
    assert d.needs_backtrack == ()


def test_depth_two_conflict_needs_backtrack(pipeline):
    p = pipeline("""
        branch Conflict { PathA PathB }
        product PathA { "(" "Int" ")" }
        product PathB { "(" "Int" "," }
    """)
    d = p.decisions["Conflict"]
    assert d.judgeable_at1 == ()
    assert d.needs_backtrack == (
        BranchCase("PathA", "Delimiter::LeftParen", "Keyword::Int"),
        BranchCase("PathB", "Delimiter::LeftParen", "Keyword::Int"),
    )


def test_backtrack_conflict_demotes_fallback(pipeline):
    p = pipeline("""
        branch Mixed { PathA PathB Bare }
        product PathA { "(" "Int" ")" }
        product PathB { "(" "Int" "," }
        product Bare { "(" }
    """)
    d = p.decisions["Mixed"]
    assert d.fallback_at1 == ()
    assert BranchCase("Bare", "Delimiter::LeftParen", None) in d.needs_backtrack
    assert len(d.needs_backtrack) == 3


def test_several_fallbacks_become_wildcards(pipeline):
    p = pipeline("""
        branch Two { X Y }
        product X { "let" }
        product Y { "let" }
    """)
    d = p.decisions["Two"]
    assert d.fallback_at1 == ()
    assert d.needs_backtrack == (
        BranchCase("X", "Keyword::Let", None),
        BranchCase("Y", "Keyword::Let", None),
    )


def test_nullable_variant_only_through_prefixes(pipeline):
    p = pipeline("""
        branch Maybe { Empty Word }
        product Empty {}
        product Word { "fn" }
    """)
    d = p.decisions["Maybe"]
    assert d.all_cases() == (BranchCase("Word", "Keyword::Fn"),)
    assert "Maybe" in p.ff.nullable


def test_sync_points_are_follow(pipeline):
    p = pipeline("""
        product Stmt { value: Value ";" }
        branch Value { A B }
        product A { "let" }
        product B { "fn" }
    """)
    assert p.decisions["Value"].sync_points_terminals == ("Delimiter::Semicolon",)


# ---------- property checks ----------

TOKENS = ["a", "b", "c"]


@st.composite
def branch_grammars(draw):
    n = draw(st.integers(min_value=1, max_value=4))
    rules = [BranchRule("Top", [BranchVariant(f"P{i}") for i in range(n)])]
    for i in range(n):
        body = draw(st.lists(st.sampled_from(TOKENS), min_size=0, max_size=3))
        rules.append(ProductRule(f"P{i}", [Terminal(t) for t in body]))
    return Grammar(rules)


def _decide(g):
    sym = SymbolTable()
    sym.freeze(g.names())
    ff = compute_nullable_first_follow(g, sym, TokenMap.identity(TOKENS))
    return decide_all(g, ff)["Top"]


@settings(max_examples=200, deadline=None)
@given(branch_grammars())
def test_every_expected_token_is_covered(g):
    d = _decide(g)
    assert {c.first for c in d.all_cases()} == set(d.expected_terminals)


@settings(max_examples=200, deadline=None)
@given(branch_grammars())
def test_single_token_cases_are_exclusive(g):
    d = _decide(g)
    at0 = {c.first for c in d.judgeable_at0}
    rest = d.judgeable_at1 + d.fallback_at1 + d.needs_backtrack
    assert not at0 & {c.first for c in rest}
    # one variant per (t0, t1) outside of backtracking
    keys = [(c.first, c.second) for c in d.judgeable_at1]
    assert len(keys) == len(set(keys))


def test_unmapped_literals_do_not_collide(pipeline):
    p = pipeline("""
        branch Kw { W L }
        product W { "while" }
        product L { "loop" }
    """)
    d = p.decisions["Kw"]
    assert d.needs_backtrack == ()
    assert [c.variant for c in d.judgeable_at0] == ["L", "W"]
    assert collect_warnings(p.grammar, p.ff, p.decisions) == []
    assert p.tokens.unresolved == ["loop", "while"]

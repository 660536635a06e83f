from hypothesis import given, settings
from hypothesis import strategies as st

from rdgen.grammar.ast import Grammar, ProductRule, Field, Modifier
from rdgen.analysis.symbols import SymbolTable
from rdgen.analysis.recursion import build_embed_graph, find_boxed_edges
from rdgen.codegen.ir import ElementKind, ProductFunction, BranchFunction


def _fn(ir, name):
    return next(f for f in ir.functions if f.name == name)


def test_self_reference_is_boxed(pipeline):
    p = pipeline("product A { a: A }")
    assert p.boxed == frozenset({("A", "A")})
    (el,) = _fn(p.ir(), "A").elements
    assert el.kind == ElementKind.BOXED


def test_optional_self_reference_becomes_option_with_box(pipeline):
    p = pipeline('product Node { "fn" next: ?Node }')
    assert p.boxed == frozenset({("Node", "Node")})
    assert _fn(p.ir(), "Node").elements[1].kind == ElementKind.OPTION_WITH_BOX


def test_transitive_cycle_breaks_one_edge(pipeline):
    p = pipeline("""
        product A { b: B }
        product B { c: C }
        product C { a: A }
    """)
    assert p.boxed == frozenset({("C", "A")})
    ir = p.ir()
    assert _fn(ir, "A").elements[0].kind == ElementKind.NORMAL
    assert _fn(ir, "C").elements[0].kind == ElementKind.BOXED


def test_lists_and_boxed_notes_are_not_edges(pipeline):
    p = pipeline("""
        product A { items: *A }
        product B { inner: B with "boxed" }
    """)
    assert p.boxed == frozenset()
    adj = build_embed_graph(p.grammar, p.sym)
    assert adj == [[], []]
    ir = p.ir()
    assert _fn(ir, "A").elements[0].kind == ElementKind.REPEAT
    # the note alone boxes the field
    assert _fn(ir, "B").elements[0].kind == ElementKind.BOXED


def test_cycle_through_branch(pipeline):
    p = pipeline("""
        branch Expr { Lit Neg }
        product Lit { "Int" }
        product Neg { "*" inner: Expr }
    """)
    assert p.boxed == frozenset({("Neg", "Expr")})
    ir = p.ir()
    expr = _fn(ir, "Expr")
    assert isinstance(expr, BranchFunction)
    assert not any(v.boxed for v in expr.variants)
    neg = _fn(ir, "Neg")
    assert isinstance(neg, ProductFunction)
    assert neg.elements[1].kind == ElementKind.BOXED


def test_branch_variant_edge_can_be_boxed(pipeline):
    p = pipeline("""
        branch A { B }
        product B { a: A }
        product C { "fn" }
    """)
    # A is visited first, so the closing edge is B -> A
    assert p.boxed == frozenset({("B", "A")})

    p = pipeline("""
        product A { b: B }
        branch B { A C }
        product C { "fn" }
    """)
    assert p.boxed == frozenset({("B", "A")})
    assert _fn(p.ir(), "B").variants[0].boxed


def test_hook_rules_have_no_edges(pipeline):
    p = pipeline("""
        product Id with "#identifier"
        product Use { name: Id }
    """)
    assert p.boxed == frozenset()


# ---------- property checks ----------

NAMES = ["R0", "R1", "R2", "R3"]


@st.composite
def field_graphs(draw):
    rules = []
    for name in NAMES:
        targets = draw(st.lists(st.sampled_from(NAMES), max_size=3))
        rules.append(ProductRule(name, [
            Field(f"f{i}", t, draw(st.sampled_from([Modifier.NONE, Modifier.OPTION, Modifier.LIST])))
            for i, t in enumerate(targets)
        ]))
    return Grammar(rules)


def _acyclic_without(g, sym, boxed):
    adj = build_embed_graph(g, sym)
    for node, nbrs in enumerate(adj):
        adj[node] = [t for t in nbrs if (sym.name_of(node), sym.name_of(t)) not in boxed]
    indeg = [0] * len(adj)
    for nbrs in adj:
        for t in nbrs:
            indeg[t] += 1
    ready = [n for n, d in enumerate(indeg) if d == 0]
    seen = 0
    while ready:
        n = ready.pop()
        seen += 1
        for t in adj[n]:
            indeg[t] -= 1
            if indeg[t] == 0:
                ready.append(t)
    return seen == len(adj)


@settings(max_examples=200, deadline=None)
@given(field_graphs())
def test_boxing_breaks_every_cycle(g):
    sym = SymbolTable()
    sym.freeze(g.names())
    boxed = find_boxed_edges(g, sym)
    assert _acyclic_without(g, sym, boxed)
    assert boxed == find_boxed_edges(g, sym)

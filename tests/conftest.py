import pytest

from rdgen.grammar.parser import parse_grammar
from rdgen.grammar.check import check_grammar
from rdgen.analysis.symbols import SymbolTable
from rdgen.analysis.tokens import TokenMap
from rdgen.analysis.first_follow import compute_nullable_first_follow
from rdgen.analysis.branches import decide_all
from rdgen.analysis.recursion import find_boxed_edges
from rdgen.codegen.ir import build_ir


MOCK_TOKEN_MAP = {
    "fn": "Keyword::Fn",
    "(": "Delimiter::LeftParen",
    ")": "Delimiter::RightParen",
    "{": "Delimiter::LeftBrace",
    "}": "Delimiter::RightBrace",
    "Int": "Keyword::Int",
    "Double": "Keyword::DoubleInt",
    "let": "Keyword::Let",
    "=": "Operator::Assignment",
    ";": "Delimiter::Semicolon",
    ",": "Delimiter::Comma",
    "*": "Operator::Multiply",
    "#identifier": "Token::Identifier($Span$)",
    "#string": "Token::Literal(Literal::StringLiteral($Span$))",
}


class Pipeline:
    def __init__(self, src, mapping=None):
        self.grammar = parse_grammar(src)
        check_grammar(self.grammar, src)
        self.tokens = TokenMap(MOCK_TOKEN_MAP if mapping is None else mapping)
        self.sym = SymbolTable()
        self.sym.freeze(self.grammar.names())
        self.ff = compute_nullable_first_follow(self.grammar, self.sym, self.tokens)
        self.decisions = decide_all(self.grammar, self.ff)
        self.boxed = find_boxed_edges(self.grammar, self.sym)

    def ir(self):
        return build_ir(self.grammar, self.sym, self.ff, self.tokens, self.boxed, self.decisions)


@pytest.fixture
def pipeline():
    return Pipeline

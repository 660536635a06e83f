import json

import pytest

from rdgen.codegen.emit_rs import emit_parser_to_string, emit_ast_to_string
from rdgen.codegen.ir import HookFunction


GRAMMAR = """
product Program { stmts: *Stmt }
branch Stmt { Let Call }
product Let { "let" name: Identifier "=" value: Expr ";" }
product Call { "fn" callee: Identifier args: ?Args ";" }
product Args { "(" first: Expr ")" }
branch Expr { Long Short Paren }
product Long { "Int" "Double" }
product Short { "Int" }
product Paren { "(" inner: Expr ")" }
product Chain { "," next: ?Chain }
product Identifier with "#identifier"
product Str { "#string" }
product Nothing {}
"""


@pytest.fixture
def emitted(pipeline):
    ir = pipeline(GRAMMAR).ir()
    return emit_parser_to_string(ir), emit_ast_to_string(ir)


def test_parser_trait_shape(emitted):
    parser, _ = emitted
    assert "pub trait GeneratedParser: BaseParser {" in parser
    assert "use super::generated_ast::*;" in parser
    assert "compile_error!" not in parser
    assert "fn parse_Identifier(&mut self) -> Result<Identifier, Self::Error>;" in parser


def test_branch_two_token_lookahead(emitted):
    parser, _ = emitted
    assert "match self.peek::<1>() {" in parser
    assert "Some(Keyword::DoubleInt) => Ok(Expr::Long(self.parse_Long()?))," in parser
    assert "_ => Ok(Expr::Short(self.parse_Short()?))," in parser
    assert "Some(Keyword::Let) => Ok(Stmt::Let(self.parse_Let()?))," in parser
    assert "_ => Err(Self::Error::build(" in parser


def test_product_steps(emitted):
    parser, _ = emitted
    assert "self.expect(&Keyword::Let)?;" in parser
    assert "let stmts = self.repeat(Self::parse_Stmt)?;" in parser
    assert "let inner = self.alloc_box(Self::parse_Expr)?;" in parser
    assert ("let args = if is_first_of_Args(&self.peek::<0>()) "
            "{ Some(self.parse_Args()?) } else { None };") in parser
    assert ("let next = if is_first_of_Chain(&self.peek::<0>()) "
            "{ Some(self.alloc_box(Self::parse_Chain)?) } else { None };") in parser
    assert "Ok(Let { name, value })" in parser
    assert "Ok(Nothing {})" in parser


def test_payload_terminal_is_consumed_by_match(emitted):
    parser, _ = emitted
    assert "match self.consume_token() {" in parser
    assert "Some(Token::Literal(Literal::StringLiteral(_))) => {}" in parser


def test_predicates(emitted):
    parser, _ = emitted
    assert ("pub fn is_first_of_Let(token: &Option<Token>) -> bool {\n"
            "    matches!(token, Some(Keyword::Let))\n}") in parser
    assert ("pub fn is_first_of_Identifier(token: &Option<Token>) -> bool {\n"
            "    matches!(token, Some(Token::Identifier(_)))\n}") in parser
    assert ("pub fn is_sync_point_of_Program(token: &Option<Token>) -> bool {\n"
            "    false\n}") in parser


def test_ast_types(emitted):
    _, ast = emitted
    assert "pub use super::manual_ast::{Identifier};" in ast
    assert "pub struct Identifier" not in ast
    assert "pub stmts: ArenaIter<Stmt>," in ast
    assert "pub inner: ArenaBox<Expr>," in ast
    assert "pub args: Option<Args>," in ast
    assert "pub next: Option<ArenaBox<Chain>>," in ast
    assert "pub struct Nothing {}" in ast
    assert "pub enum Expr {\n    Long(Long),\n    Short(Short),\n    Paren(Paren),\n}" in ast
    assert "#[derive(Debug, Copy, Clone, std::hash::Hash, PartialEq, Eq)]" in ast


def test_output_is_deterministic(pipeline, emitted):
    a = pipeline(GRAMMAR).ir()
    b = pipeline(GRAMMAR).ir()
    assert emit_parser_to_string(a) == emit_parser_to_string(b) == emitted[0]
    assert emit_ast_to_string(a) == emit_ast_to_string(b) == emitted[1]


def test_unresolved_literal_emits_compile_error(pipeline):
    ir = pipeline('product Loop { "while" "fn" }').ir()
    parser = emit_parser_to_string(ir)
    assert parser.index('compile_error!("rdgen: no token mapping for literal(s): \\"while\\"");') \
        < parser.index("pub trait GeneratedParser")
    assert 'self.expect(&UnknownToken /* "while" */)?;' in parser


def test_backtrack_chain(pipeline):
    ir = pipeline("""
        branch Conflict { PathA PathB }
        product PathA { "(" "Int" ")" }
        product PathB { "(" "Int" "," }
    """).ir()
    parser = emit_parser_to_string(ir)
    expected = (
        "Some(Keyword::Int) => {\n"
        "                    if let Ok(node) = self.backtrack(Self::parse_PathA) {\n"
        "                        Ok(Conflict::PathA(node))\n"
        "                    } else {\n"
        "                        Ok(Conflict::PathB(self.parse_PathB()?))\n"
        "                    }\n"
        "                },"
    )
    assert expected in parser


def test_wildcard_backtrack_is_default_arm(pipeline):
    ir = pipeline("""
        branch Two { X Y }
        product X { "let" }
        product Y { "let" }
    """).ir()
    parser = emit_parser_to_string(ir)
    assert "Some(Keyword::Let) => {" in parser
    assert "if let Ok(node) = self.backtrack(Self::parse_X) {" in parser
    assert "match self.peek::<1>()" not in parser


def test_hook_methods_and_keyword_fields(pipeline):
    ir = pipeline("""
        product Call { "fn" type: Identifier with "parse_callee" }
        product Identifier with "#identifier"
    """).ir()
    assert ir.hook_methods == [("parse_callee", "Identifier")]
    parser = emit_parser_to_string(ir)
    ast = emit_ast_to_string(ir)
    assert "fn parse_callee(&mut self) -> Result<Identifier, Self::Error>;" in parser
    assert "let r#type = self.parse_callee()?;" in parser
    assert "pub r#type: Identifier," in ast


def test_hook_method_used_with_two_types_is_rejected(pipeline):
    p = pipeline("""
        product A { x: B with "parse_hook" y: C with "parse_hook" }
        product B with "#identifier"
        product C with "#string"
    """)
    with pytest.raises(ValueError):
        p.ir()


def test_invalid_hook_name_fails_before_emitting(pipeline):
    ir = pipeline('product A { x: B with "parse-b" }\nproduct B { "fn" }').ir()
    with pytest.raises(ValueError):
        emit_parser_to_string(ir)


def test_ir_json_dump(pipeline):
    ir = pipeline(GRAMMAR).ir()
    doc = json.loads(ir.to_json())
    kinds = {f["name"]: f["kind"] for f in doc["functions"]}
    assert kinds["Expr"] == "branch"
    assert kinds["Identifier"] == "hook"
    assert kinds["Let"] == "product"
    assert ["Chain", "Chain"] in doc["boxed_edges"]
    assert [f.name for f in ir.functions if isinstance(f, HookFunction)] == ["Identifier"]


def test_nullable_branch_takes_empty_variant_on_follow(pipeline):
    ir = pipeline("""
        product Stmt { head: Maybe ";" }
        branch Maybe { Empty Word }
        product Empty {}
        product Word { "fn" }
    """).ir()
    maybe = next(f for f in ir.functions if f.name == "Maybe")
    assert maybe.nullable_variant.name == "Empty"
    parser = emit_parser_to_string(ir)
    assert "Some(Keyword::Fn) => Ok(Maybe::Word(self.parse_Word()?))," in parser
    assert "None | Some(Delimiter::Semicolon) => Ok(Maybe::Empty(self.parse_Empty()?))," in parser
    assert "    [Delimiter::Semicolon, Keyword::Fn]," in parser


def test_non_nullable_branch_has_no_empty_arm(emitted):
    parser, _ = emitted
    assert "None =>" not in parser
    assert "None |" not in parser

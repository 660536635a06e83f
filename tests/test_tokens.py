from rdgen.analysis.tokens import (
    TokenMap, UNKNOWN_TOKEN, load_token_map, has_payload, token_pattern, unknown_kind,
)


CSV = '''"fn","Token::Keyword(Keyword::Fn)"
"(","Token::Delimiter(Delimiter::LeftParen)"

"#identifier","Token::Identifier($Span$)"
'''


def test_csv_lookup():
    tm = TokenMap.from_csv_text(CSV)
    assert len(tm) == 3
    assert tm.lookup("fn") == "Token::Keyword(Keyword::Fn)"
    assert tm.lookup("(") == "Token::Delimiter(Delimiter::LeftParen)"
    assert tm.lookup("while") is None


def test_load_from_file(tmp_path):
    path = tmp_path / "token_map.csv"
    path.write_text(CSV, encoding="utf-8")
    tm = load_token_map(str(path))
    assert "#identifier" in tm


def test_unpaired_lines_are_skipped():
    tm = TokenMap.from_csv_text(
        'literal,kind\n"fn","Keyword::Fn"\nfn,Keyword::Fn\n"let","Keyword::Let","reserved"\n'
    )
    assert tm.lookup("fn") == "Keyword::Fn"
    assert tm.lookup("let") == "Keyword::Let"
    assert len(tm) == 2
    assert tm.skipped == [(1, "literal,kind"), (3, "fn,Keyword::Fn")]


def test_resolve_collects_every_missing_literal_once():
    tm = TokenMap({"fn": "Keyword::Fn"})
    assert tm.resolve("fn") == "Keyword::Fn"
    assert tm.resolve("while") == 'UnknownToken /* "while" */'
    assert tm.resolve("loop") == unknown_kind("loop")
    assert tm.resolve("while") == unknown_kind("while")
    assert tm.unresolved == ["while", "loop"]


def test_lookup_does_not_record_missing():
    tm = TokenMap()
    assert tm.lookup("x") is None
    assert tm.unresolved == []


def test_payload_placeholders():
    assert has_payload("Token::Identifier($Span$)")
    assert not has_payload("Keyword::Fn")
    assert token_pattern("Token::Literal(Literal::StringLiteral($Span$))") == "Token::Literal(Literal::StringLiteral(_))"
    assert token_pattern("Keyword::Fn") == "Keyword::Fn"


def test_identity_map():
    tm = TokenMap.identity(["fn", "("])
    assert tm.lookup("(") == "("


def test_unknown_kind_keeps_literal_apart():
    assert unknown_kind("while") != unknown_kind("loop")
    assert unknown_kind("while").startswith(UNKNOWN_TOKEN)
    # no payload placeholder and no way to close the comment early
    odd = unknown_kind("$*/")
    assert not has_payload(odd)
    assert odd.count("*/") == 1

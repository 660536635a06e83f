from rdgen.analysis.tokens import TokenMap
from rdgen.codegen.emit_tokenmap import emit_token_scanner_to_string


TOKEN_MAP = """\
"fn","Keyword::Fn"
"let","Keyword::Let"
"return","Keyword::Return"
"struct","Keyword::Struct"
"=","Operator::Assignment"
"==","Operator::Equal"
"+","Operator::Plus"
"+=","Operator::PlusAssign"
"...","Delimiter::Ellipsis"
";","Delimiter::Semicolon"
"#identifier","Token::Identifier($Span$)"
"#string","Token::StringLiteral($Span$)"
"""


def _scanner(text=TOKEN_MAP):
    return emit_token_scanner_to_string(TokenMap.from_csv_text(text), module_name="token_scan")


def test_header_counts():
    lines = _scanner().splitlines()
    assert lines[0] == "//! Auto-generated by rdgen (tokens)"
    assert lines[1] == "//! module: token_scan"
    assert lines[2] == "//! long keywords=2, short keywords=2, operators/delimiters=6"
    assert "use phf::phf_map;" in lines


def test_long_literals_go_to_phf_map():
    src = _scanner()
    start = src.index("phf_map! {")
    body = src[start:src.index("};", start)]
    assert '    b"return" => Keyword::Return,' in body
    assert '    b"struct" => Keyword::Struct,' in body
    assert "b\"let\"" not in body


def test_short_keywords_match():
    src = _scanner()
    start = src.index("pub fn scan_short_keywords")
    body = src[start:src.index("pub fn scan_operator_or_delimiter")]
    assert '        b"let" => Keyword::Let,' in body
    assert '        b"fn" => Keyword::Fn,' in body
    # longest first
    assert body.index('b"let"') < body.index('b"fn"')
    assert "        _ => Token::Invalid," in body
    assert "Operator" not in body


def test_value_tokens_are_left_to_tokenizer():
    src = _scanner()
    assert "identifier" not in src
    assert "StringLiteral" not in src
    assert "$" not in src


def test_operator_trie_prefers_longest():
    lines = _scanner().splitlines()
    i = lines.index("        Some(b'=') => {")
    assert lines[i + 1:i + 7] == [
        "            tokenizer.advance();",
        "            match tokenizer.peek() {",
        "                Some(b'=') => {",
        "                    tokenizer.advance();",
        "                    Ok(Operator::Equal)",
        "                }",
    ]
    assert lines[i + 7] == "                _ => Ok(Operator::Assignment),"
    assert "                _ => Ok(Operator::Plus)," in lines
    assert "            Ok(Delimiter::Semicolon)" in lines


def test_partial_prefix_is_an_error():
    src = _scanner()
    # "." and ".." are not tokens; only "..." is
    assert src.count("_ => Err(TokenizeErr::UnknownToken(tokenizer.current_pos)),") == 2
    assert "Ok(Delimiter::Ellipsis)" in src
    assert src.rstrip().endswith("_ => Err(TokenizeErr::UnknownToken(start_pos)),\n    }\n}")


def test_byte_escaping():
    src = _scanner('"\\","Operator::Backslash"\n"\'","Delimiter::Quote"\n"élan","Keyword::Elan"\n')
    assert "Some(b'\\\\') => {" in src
    assert "Some(b'\\'') => {" in src
    assert '        b"\\xc3\\xa9lan" => Keyword::Elan,' in src


def test_output_is_deterministic():
    assert _scanner() == _scanner()

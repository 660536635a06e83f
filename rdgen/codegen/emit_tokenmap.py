# rdgen/codegen/emit_tokenmap.py
"""토큰 맵 → 토크나이저용 Rust 스캐너 모듈.

토큰 맵 하나에서 파서와 토크나이저가 같은 리터럴 집합을 공유하도록
키워드/연산자 인식 코드를 만든다. `#`으로 시작하는 값 토큰(식별자, 문자열 ...)은
토크나이저가 직접 처리하므로 제외한다.

- LONG_KEYWORDS_MAP           : 길이 5 이상 리터럴 → phf 맵
- scan_short_keywords         : 길이 5 미만 키워드 → `match` (없으면 Token::Invalid)
- scan_operator_or_delimiter  : 연산자/구분자 → 바이트 트라이를 펼친 중첩 `match`
                                (가장 긴 리터럴 우선, 중간에 끊기면 그 지점의 토큰)

리터럴은 길이 내림차순(동률이면 맵 순서)으로 나열한다.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..analysis.tokens import TokenMap

LONG_KEYWORD_MIN_LEN = 5

_PRELUDE = """\
use phf::phf_map;
use crate::tokenizer::errors::TokenizeErr;
use crate::tokenizer::tokenize::Tokenizer;
use crate::tokenizer::tokens::{Token, Keyword, Operator, Delimiter};
"""


@dataclass
class _TrieNode:
    token: Optional[str] = None
    children: Dict[int, "_TrieNode"] = field(default_factory=dict)


def _strip_placeholders(kind: str) -> str:
    return kind.replace("$", "")

def _byte_str(literal: str) -> str:
    out = []
    for b in literal.encode("utf-8"):
        if b in (0x22, 0x5C):               # " \
            out.append("\\" + chr(b))
        elif 0x20 <= b < 0x7F:
            out.append(chr(b))
        else:
            out.append(f"\\x{b:02x}")
    return 'b"' + "".join(out) + '"'

def _byte_char(b: int) -> str:
    if b in (0x27, 0x5C):                   # ' \
        return "b'\\" + chr(b) + "'"
    if 0x20 <= b < 0x7F:
        return f"b'{chr(b)}'"
    return f"b'\\x{b:02x}'"

def _indent(lines: Sequence[str], n: int = 1) -> List[str]:
    pad = "    " * n
    return [pad + ln if ln else ln for ln in lines]


def _scannable(tokens: TokenMap) -> List[Tuple[str, str]]:
    entries = [(lit, kind) for lit, kind in tokens.items() if "#" not in lit]
    return sorted(entries, key=lambda e: -len(e[0]))


def _build_trie(entries: Sequence[Tuple[str, str]]) -> _TrieNode:
    root = _TrieNode()
    for lit, kind in entries:
        node = root
        for b in lit.encode("utf-8"):
            node = node.children.setdefault(b, _TrieNode())
        node.token = _strip_placeholders(kind)
    return root

def _trie_arms(node: _TrieNode) -> List[str]:
    lines: List[str] = []
    for b in sorted(node.children):
        child = node.children[b]
        lines.append(f"Some({_byte_char(b)}) => {{")
        lines.append("    tokenizer.advance();")
        if child.children:
            if child.token is not None:
                fallback = f"Ok({child.token})"
            else:
                fallback = "Err(TokenizeErr::UnknownToken(tokenizer.current_pos))"
            lines.append("    match tokenizer.peek() {")
            lines += _indent(_trie_arms(child), 2)
            lines.append(f"        _ => {fallback},")
            lines.append("    }")
        else:
            lines.append(f"    Ok({child.token})")
        lines.append("}")
    return lines


def emit_token_scanner_to_string(tokens: TokenMap, module_name: str = "token_map") -> str:
    """
    emit_token_scanner_to_string(tokens) -> str
    -------------------------------------------
    토큰 맵으로부터 키워드 phf 맵과 두 스캐너 함수를 담은 Rust 소스 문자열.
    같은 맵이면 항상 같은 문자열이 나온다.
    """
    entries = _scannable(tokens)
    long_keywords = [(l, k) for l, k in entries if len(l) >= LONG_KEYWORD_MIN_LEN]
    short_keywords = [(l, k) for l, k in entries if len(l) < LONG_KEYWORD_MIN_LEN and "Keyword" in k]
    operators = [(l, k) for l, k in entries if "Operator" in k or "Delimiter" in k]

    out: List[str] = [
        "//! Auto-generated by rdgen (tokens)",
        f"//! module: {module_name}",
        f"//! long keywords={len(long_keywords)}, short keywords={len(short_keywords)}, "
        f"operators/delimiters={len(operators)}",
        "#![allow(dead_code)]",
        "#![allow(unused_imports)]",
        _PRELUDE,
    ]

    out.append("pub static LONG_KEYWORDS_MAP: phf::Map<&'static [u8], Token> = phf_map! {")
    for lit, kind in long_keywords:
        out.append(f"    {_byte_str(lit)} => {_strip_placeholders(kind)},")
    out.append("};")
    out.append("")

    out.append("pub fn scan_short_keywords(literal: &[u8]) -> Token {")
    out.append("    match literal {")
    for lit, kind in short_keywords:
        out.append(f"        {_byte_str(lit)} => {_strip_placeholders(kind)},")
    out.append("        _ => Token::Invalid,")
    out.append("    }")
    out.append("}")
    out.append("")

    out.append("pub fn scan_operator_or_delimiter(tokenizer: &mut Tokenizer<'_, '_>) -> Result<Token, TokenizeErr> {")
    out.append("    let start_pos = tokenizer.current_pos;")
    out.append("    match tokenizer.peek() {")
    out += _indent(_trie_arms(_build_trie(operators)), 2)
    out.append("        _ => Err(TokenizeErr::UnknownToken(start_pos)),")
    out.append("    }")
    out.append("}")

    return "\n".join(out) + "\n"

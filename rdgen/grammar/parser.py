"""rdgen 문법 DSL 파서
- branch NAME { Variant [with "hook"] ... }
- product NAME { ("lit" | [*|?]field: Target | field: [*|?]Target) [with "note"] ... }
- product NAME [with "#literal"]      (본문 없음 → 수동 훅 규칙)
- // 한 줄 주석

```
<grammar>       ::= { <rule> }
<rule>          ::= <branch_rule> | <product_rule>
<branch_rule>   ::= "branch" IDENT "{" { IDENT [ "with" STRING ] } "}"
<product_rule>  ::= "product" IDENT ( "{" <product_inner> "}" | [ "with" STRING ] )
<product_inner> ::= { <product_item> [ "with" STRING ] }
<product_item>  ::= <modifier> IDENT ":" IDENT | IDENT ":" <modifier> IDENT | STRING
<modifier>      ::= [ "*" | "?" ]
```
"""

from __future__ import annotations
import regex as re
from dataclasses import dataclass
from typing import List, Optional, Tuple
from .ast import *

# ---- Lexer 토큰 ----
_TOKEN_SPEC = [
    ("WS",       r"[ \t\f\r]+"),
    ("NEWLINE",  r"\n"),
    ("COMMENT",  r"//[^\n]*"),
    ("LBRACE",   r"\{"),
    ("RBRACE",   r"\}"),
    ("COLON",    r":"),
    ("STAR",     r"\*"),
    ("QMARK",    r"\?"),
    ("STRING",   r'"[^"\n]*"'),
    ("IDENT",    r"[A-Za-z_][A-Za-z0-9_]*"),
]
MASTER_RE = re.compile("|".join(f"(?P<{n}>{p})" for n, p in _TOKEN_SPEC))

# IDENT 중 예약어는 별도 종류로 승격
_KEYWORDS = {"branch": "BRANCH", "product": "PRODUCT", "with": "WITH"}

@dataclass
class Tok:
    kind: str
    lexeme: str
    start: int
    end: int
    line: int
    col: int

    @property
    def span(self) -> Span:
        return Span(self.start, self.end, self.line, self.col)

def _scan(src: str) -> List[Tok]:
    """공백/개행/주석은 줄/칼럼 갱신만 하고 토큰스트림에는 **넣지 않는다**."""
    toks: List[Tok] = []
    line = col = 1
    i = 0
    while i < len(src):
        m = MASTER_RE.match(src, i)
        if not m:
            snippet = _snippet_caret_at_pos(src, i)
            raise SyntaxError(f"Unexpected char {src[i]!r} at {line}:{col}\n{snippet}")
        kind = m.lastgroup or ""
        lex = m.group(0)
        start, end = i, m.end()

        if kind == "IDENT":
            kind = _KEYWORDS.get(lex, kind)
        if kind not in ("WS", "COMMENT", "NEWLINE"):
            toks.append(Tok(kind, lex, start, end, line, col))

        # 위치 갱신
        if kind == "NEWLINE":
            line += 1
            col = 1
        else:
            col += len(lex)
        i = end

    toks.append(Tok("EOF", "", len(src), len(src), line, col))
    return toks


# ---------- error handling utils ----------
def _line_bounds(src: str, pos: int) -> Tuple[int, int]:
    """pos가 속한 라인의 [시작, 끝+1) 범위"""
    start = src.rfind("\n", 0, pos)
    if start == -1:
        start = 0
    else:
        start += 1
    end = src.find("\n", pos)
    if end == -1:
        end = len(src)
    return start, end

def snippet_at(src: str, span: Span) -> str:
    """span 시작 위치에 캐럿을 찍은 한 줄 스니펫."""
    start, end = _line_bounds(src, span.start)
    caret = " " * (span.col - 1) + "^"
    return f"{src[start:end]}\n{caret}"

def _snippet_with_caret(src: str, tok: Tok) -> str:
    """토큰 시작 위치에 캐럿"""
    return snippet_at(src, tok.span)

def _snippet_caret_at_pos(src: str, pos: int) -> str:
    """임의의 절대 위치 pos에 캐럿"""
    start, end = _line_bounds(src, pos)
    col = (pos - start) + 1
    caret = " " * (col - 1) + "^"
    return f"{src[start:end]}\n{caret}"

_DESCRIBE = {
    "LBRACE": "'{'", "RBRACE": "'}'", "COLON": "':'", "STAR": "'*'", "QMARK": "'?'",
    "BRANCH": "'branch'", "PRODUCT": "'product'", "WITH": "'with'",
    "STRING": "string literal", "IDENT": "identifier", "EOF": "EOF",
}

# --- 토큰 스트림 ---
class _TS:
    def __init__(self, toks: List[Tok], src: str):
        self.toks = toks
        self.i = 0
        self.src = src

    def la(self) -> Tok:
        return self.toks[self.i]

    def error(self, msg: str, tok: Optional[Tok] = None) -> SyntaxError:
        t = tok or self.la()
        snippet = _snippet_with_caret(self.src, t)
        return SyntaxError(f"{msg} at {t.line}:{t.col}\n{snippet}")

    def eat(self, kind: str) -> Tok:
        t = self.la()
        if t.kind != kind:
            raise self.error(f"Expected {_DESCRIBE.get(kind, kind)}, got {_DESCRIBE.get(t.kind, t.kind)}")
        self.i += 1
        return t

    def match(self, kind: str) -> Optional[Tok]:
        if self.la().kind == kind:
            return self.eat(kind)
        return None

def _unquote_string(s: str) -> str:
    # 이스케이프는 지원하지 않는다: "..." 안의 원문 그대로
    return s[1:-1]

def _parse_note(ts: _TS) -> Optional[str]:
    """[ "with" STRING ]"""
    if ts.match("WITH"):
        return _unquote_string(ts.eat("STRING").lexeme)
    return None


# --- Grammar Parsing ---
def parse_grammar(src: str) -> Grammar:
    ts = _TS(_scan(src), src)
    g = Grammar()

    while ts.la().kind != "EOF":
        t = ts.la()
        if t.kind == "BRANCH":
            g.rules.append(_parse_branch_rule(ts))
        elif t.kind == "PRODUCT":
            g.rules.append(_parse_product_rule(ts))
        else:
            raise ts.error(f"Expected 'branch' or 'product', got {_DESCRIBE.get(t.kind, t.kind)}")

    return g

def _parse_branch_rule(ts: _TS) -> BranchRule:
    kw = ts.eat("BRANCH")
    name = ts.eat("IDENT").lexeme
    ts.eat("LBRACE")

    variants: List[BranchVariant] = []
    while ts.la().kind not in ("RBRACE", "EOF"):
        v_tok = ts.eat("IDENT")
        note = _parse_note(ts)
        variants.append(BranchVariant(v_tok.lexeme, note, v_tok.span))

    ts.eat("RBRACE")
    return BranchRule(name, variants, kw.span)

def _parse_product_rule(ts: _TS) -> ProductRule:
    kw = ts.eat("PRODUCT")
    name = ts.eat("IDENT").lexeme

    # 본문 없는 product → 수동 훅
    if not ts.match("LBRACE"):
        note = _parse_note(ts)
        return ProductRule(name, None, note, kw.span)

    members: List[Member] = []
    while ts.la().kind not in ("RBRACE", "EOF"):
        members.append(_parse_product_item(ts))

    ts.eat("RBRACE")
    return ProductRule(name, members, None, kw.span)

def _parse_modifier(ts: _TS) -> str:
    if ts.match("STAR"):
        return Modifier.LIST
    if ts.match("QMARK"):
        return Modifier.OPTION
    return Modifier.NONE

def _parse_product_item(ts: _TS) -> Member:
    t = ts.la()
    if t.kind == "STRING":
        ts.eat("STRING")
        # 단말에 붙은 note는 의미가 없으므로 읽고 버린다
        _parse_note(ts)
        return Terminal(_unquote_string(t.lexeme), t.span)

    if t.kind in ("IDENT", "STAR", "QMARK"):
        # 수식자는 필드 이름 앞(?ret: T) 또는 콜론 뒤(ret: ?T) 어느 쪽에나 올 수 있다
        prefix = _parse_modifier(ts)
        name_tok = ts.eat("IDENT")
        ts.eat("COLON")
        mod_tok = ts.la()
        suffix = _parse_modifier(ts)
        if prefix != Modifier.NONE and suffix != Modifier.NONE:
            raise ts.error(f"Field '{name_tok.lexeme}' has two modifiers", mod_tok)
        modifier = prefix if prefix != Modifier.NONE else suffix
        target = ts.eat("IDENT").lexeme
        note = _parse_note(ts)
        return Field(name_tok.lexeme, target, modifier, note, t.span)

    raise ts.error(f"Expected identifier or string literal in product item, got {_DESCRIBE.get(t.kind, t.kind)}")

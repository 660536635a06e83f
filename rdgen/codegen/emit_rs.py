# rdgen/codegen/emit_rs.py
"""Rust Code Emit (파서 트레이트 .rs + AST 타입 .rs 생성).

개요
----
- CodegenIR을 받아 Rust 소스 코드를 **문자열로** 생성한다. 파일 쓰기는 CLI 몫.
- 파서 파일(emit_parser_to_string):
  * 규칙별 토큰 술어 `is_first_of_<Rule>` / `is_sync_point_of_<Rule>`
  * `GeneratedParser: BaseParser` 트레이트
    - branch : `match self.peek::<0>()` 결정표
               (t0 판정 → t1 판정 → fallback → backtrack 순, nullable이면 FOLLOW/입력 끝 → 빈 변형,
                마지막은 오류 arm)
    - product: 소비/재귀 단계를 순서대로 나열한 뒤 레코드 구성
    - 훅    : 시그니처만 (구현은 수동 파서 코어)
- AST 파일(emit_ast_to_string):
  * branch → enum, product → struct
  * List → ArenaIter<T>, Option → Option<T>, 박싱 → ArenaBox<T>
  * 훅 규칙 타입은 수동 AST 모듈에서 재수출

결정성
------
IR의 모든 리스트가 이미 정렬되어 있으므로 같은 IR이면 바이트 단위로 같은 문자열이 나온다.
"""

from __future__ import annotations
import regex as re
from typing import Dict, List, Optional, Sequence

from .ir import (
    CodegenIR, BranchFunction, ProductFunction, HookFunction, BranchArm, VariantIR, Element, ElementKind,
)
from ..analysis.tokens import has_payload, token_pattern


# ---------- 유틸 ----------

_RS_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# 필드 이름으로 쓰이면 r# 접두가 필요한 Rust 예약어
_RS_KEYWORDS = frozenset("""
    as async await break const continue crate dyn else enum extern false fn for if impl in
    let loop match mod move mut pub ref return self static struct super trait true type
    unsafe use where while abstract become box do final macro override priv try typeof
    unsized virtual yield
""".split())

_PARSER_PRELUDE = """\
use crate::parser::base_parser::BaseParser;
use crate::parser::errors::IParseErr;
use crate::tokenizer::tokens::*;
"""

_AST_PRELUDE = """\
use crate::compiler::arena::{ArenaBox, ArenaIter};
"""

_AST_DERIVE = "#[derive(Debug, Copy, Clone, std::hash::Hash, PartialEq, Eq)]"


def _escape_rs(s: str) -> str:
    """Rust 문자열 리터럴 이스케이프."""
    return s.replace("\\", "\\\\").replace('"', '\\"')

def _rs_ident(name: str) -> str:
    return f"r#{name}" if name in _RS_KEYWORDS else name

def _fn_name(rule: str) -> str:
    return f"parse_{rule}"

def _pat(kind: str) -> str:
    return f"Some({token_pattern(kind)})"

def _indent(lines: Sequence[str], n: int = 1) -> List[str]:
    pad = "    " * n
    return [pad + ln if ln else ln for ln in lines]

def _arm(pattern: str, body: List[str]) -> List[str]:
    """match arm: 본문 첫 줄은 `=>` 뒤에 붙이고, 마지막 줄에 `,`."""
    out = [f"{pattern} => {body[0]}"] + body[1:]
    out[-1] += ","
    return out


def _preflight_check(ir: CodegenIR) -> None:
    """기본 불변식/전제 조건을 조기 검증하여 생성 단계에서 실패시킨다."""
    for f in ir.functions:
        if not _RS_IDENT_RE.fullmatch(f.name):
            raise ValueError(f"emit_rs: rule name {f.name!r} is not a Rust identifier")
        if isinstance(f, BranchFunction) and not f.variants:
            raise ValueError(f"emit_rs: branch {f.name} has no variants")
    for method, _ in ir.hook_methods:
        if not _RS_IDENT_RE.fullmatch(method):
            raise ValueError(f"emit_rs: hook name {method!r} is not a Rust identifier")


# ---------- 오류 / 술어 ----------

def _error_expr(expected: Sequence[str]) -> List[str]:
    """
    `Err(Self::Error::build(arena, 값 토큰 기대 여부, [기대 토큰...], env))`
    값(payload)을 가진 토큰은 상수로 만들 수 없으므로 플래그로만 알린다.
    """
    plain = [k for k in expected if not has_payload(k)]
    with_payload = any(has_payload(k) for k in expected)
    return [
        "Err(Self::Error::build(",
        "    self.get_errors_arena(),",
        f"    {str(with_payload).lower()},",
        f"    [{', '.join(plain)}],",
        "    self.enviroment(),",
        "))",
    ]

def _predicate(prefix: str, rule: str, kinds: Sequence[str]) -> List[str]:
    if kinds:
        body = "matches!(token, " + " | ".join(_pat(k) for k in kinds) + ")"
    else:
        body = "false"
    return [
        f"pub fn {prefix}_{rule}(token: &Option<Token>) -> bool {{",
        f"    {body}",
        "}",
    ]


# ---------- branch ----------

def _variant_call(variant: str, boxed: bool, hook: Optional[str]) -> str:
    fn = hook or _fn_name(variant)
    if boxed:
        return f"self.alloc_box(Self::{fn})?"
    return f"self.{fn}()?"

def _variant_ok(enum: str, arm: BranchArm) -> str:
    return f"Ok({enum}::{arm.variant}({_variant_call(arm.variant, arm.boxed, arm.hook)}))"

def _empty_ok(enum: str, v: VariantIR) -> str:
    return f"Ok({enum}::{v.name}({_variant_call(v.name, v.boxed, v.hook)}))"

def _unique_variants(arms: Sequence[BranchArm]) -> List[BranchArm]:
    seen: Dict[str, BranchArm] = {}
    for a in arms:
        seen.setdefault(a.variant, a)
    return list(seen.values())

def _backtrack_chain(enum: str, arms: Sequence[BranchArm]) -> List[str]:
    """
    앞의 후보들은 `self.backtrack(..)`으로 시도-복원, 마지막 후보는 그대로 파싱해
    실패 시 그 오류를 전파한다.
    """
    arms = _unique_variants(arms)
    if len(arms) == 1:
        return [_variant_ok(enum, arms[0])]
    lines = ["{"]
    for i, a in enumerate(arms[:-1]):
        fn = a.hook or _fn_name(a.variant)
        head = "if" if i == 0 else "} else if"
        value = "self.alloc_box(move |_| Ok(node))?" if a.boxed else "node"
        lines.append(f"    {head} let Ok(node) = self.backtrack(Self::{fn}) {{")
        lines.append(f"        Ok({enum}::{a.variant}({value}))")
    lines.append("    } else {")
    lines.append(f"        {_variant_ok(enum, arms[-1])}")
    lines.append("    }")
    lines.append("}")
    return lines

def _emit_branch(fn: BranchFunction) -> List[str]:
    enum = fn.name
    arms: List[str] = []

    # 1) t0 하나로 결정
    for a in fn.judgeable_at0:
        arms += _arm(_pat(a.first), [_variant_ok(enum, a)])

    # 2) t0를 공유하는 버킷: t1 판정 → backtrack → fallback/와일드카드
    shared = sorted({a.first for a in fn.judgeable_at1 + fn.fallback_at1 + fn.needs_backtrack})
    for t0 in shared:
        at1 = [a for a in fn.judgeable_at1 if a.first == t0]
        fallback = [a for a in fn.fallback_at1 if a.first == t0]
        backtrack = [a for a in fn.needs_backtrack if a.first == t0]
        wildcard = [a for a in backtrack if a.second is None]
        seconds = sorted({a.second for a in backtrack if a.second is not None})

        inner: List[str] = []
        for a in at1:
            inner += _arm(_pat(a.second), [_variant_ok(enum, a)])
        for t1 in seconds:
            candidates = [a for a in backtrack if a.second == t1] + wildcard
            inner += _arm(_pat(t1), _backtrack_chain(enum, candidates))

        if wildcard:
            default = _backtrack_chain(enum, wildcard)
        elif fallback:
            default = [_variant_ok(enum, fallback[0])]
        else:
            default = _error_expr(sorted({a.second for a in at1} | set(seconds)))

        if inner:
            inner += _arm("_", default)
            body = ["match self.peek::<1>() {"] + _indent(inner) + ["}"]
        else:
            body = default
        arms += _arm(_pat(t0), body)

    expected = list(fn.expected_terminals)

    # 3) nullable: FOLLOW 토큰이나 입력 끝이면 빈 변형
    if fn.nullable_variant is not None:
        taken = set(fn.expected_terminals)
        follow = [k for k in fn.sync_points_terminals if k not in taken]
        pattern = " | ".join(["None"] + [_pat(k) for k in follow])
        arms += _arm(pattern, [_empty_ok(enum, fn.nullable_variant)])
        expected = sorted(taken | set(follow))

    # 4) 나머지 전부 오류
    arms += _arm("_", _error_expr(expected))

    return (
        [f"fn {_fn_name(fn.name)}(&mut self) -> Result<{fn.name}, Self::Error> {{",
         "    match self.peek::<0>() {"]
        + _indent(arms, 2)
        + ["    }", "}"]
    )


# ---------- product ----------

def _element_value(el: Element) -> str:
    fn = el.hook or _fn_name(el.ast_type)
    if el.kind == ElementKind.NORMAL:
        return f"self.{fn}()?"
    if el.kind == ElementKind.BOXED:
        return f"self.alloc_box(Self::{fn})?"
    if el.kind == ElementKind.REPEAT:
        return f"self.repeat(Self::{fn})?"
    inner = f"self.{fn}()?" if el.kind == ElementKind.OPTION else f"self.alloc_box(Self::{fn})?"
    return f"if is_first_of_{el.ast_type}(&self.peek::<0>()) {{ Some({inner}) }} else {{ None }}"

def _emit_terminal(token: str) -> List[str]:
    if not has_payload(token):
        return [f"self.expect(&{token})?;"]
    err = _error_expr([token])
    return (
        ["match self.consume_token() {",
         f"    {_pat(token)} => {{}}",
         "    _ => {",
         f"        return {err[0]}"]
        + _indent(err[1:-1], 2)
        + [f"        {err[-1]};",
           "    }",
           "}"]
    )

def _emit_product(fn: ProductFunction) -> List[str]:
    body: List[str] = []
    fields: List[str] = []
    for el in fn.elements:
        if el.kind == ElementKind.TERMINAL:
            body += _emit_terminal(el.token)
            continue
        name = _rs_ident(el.field_name)
        body.append(f"let {name} = {_element_value(el)};")
        fields.append(name)

    init = f"{fn.name} {{ {', '.join(fields)} }}" if fields else f"{fn.name} {{}}"
    body.append(f"Ok({init})")
    return (
        [f"fn {_fn_name(fn.name)}(&mut self) -> Result<{fn.name}, Self::Error> {{"]
        + _indent(body)
        + ["}"]
    )


# ---------- 진입점 ----------

def _header(module_name: str, ir: CodegenIR, what: str) -> str:
    n_branch = sum(isinstance(f, BranchFunction) for f in ir.functions)
    n_product = sum(isinstance(f, ProductFunction) for f in ir.functions)
    n_hook = sum(isinstance(f, HookFunction) for f in ir.functions)
    return f"""\
//! Auto-generated by rdgen ({what})
//! module: {module_name}
//! rules={len(ir.functions)}, branches={n_branch}, products={n_product}, hooks={n_hook}
//!
//! 이 파일은 rdgen이 문법 파일에서 생성한 것이다. 직접 수정하지 말 것.
#![allow(non_snake_case)]
#![allow(dead_code)]
#![allow(unused_imports)]
"""

def emit_parser_to_string(ir: CodegenIR, module_name: str = "generated_parser", *, ast_module: str = "generated_ast") -> str:
    """
    emit_parser_to_string(ir, module_name) -> str
    ---------------------------------------------
    `GeneratedParser` 트레이트와 토큰 술어를 담은 하나의 Rust 소스 문자열.
    토큰 맵에 없는 리터럴이 있으면 파일 맨 위에 `compile_error!`를 넣어
    빌드 시점에 드러나게 한다.
    """
    _preflight_check(ir)

    out: List[str] = [_header(module_name, ir, "parser")]
    if ir.unresolved:
        lits = ", ".join(f'\\"{_escape_rs(lit)}\\"' for lit in ir.unresolved)
        out.append(f'compile_error!("rdgen: no token mapping for literal(s): {lits}");\n')
    out.append(_PARSER_PRELUDE + f"use super::{ast_module}::*;\n")

    preds: List[str] = ["// ---------- FIRST / sync-point 술어 ----------"]
    for f in ir.functions:
        preds += _predicate("is_first_of", f.name, f.first_terminals)
        preds += _predicate("is_sync_point_of", f.name, f.sync_points_terminals)
    out.append("\n".join(preds) + "\n")

    items: List[List[str]] = []
    for f in ir.functions:
        if isinstance(f, BranchFunction):
            items.append(_emit_branch(f))
        elif isinstance(f, ProductFunction):
            items.append(_emit_product(f))
        else:
            items.append([f"fn {_fn_name(f.name)}(&mut self) -> Result<{f.name}, Self::Error>;"])
    for method, ret in ir.hook_methods:
        items.append([f"fn {method}(&mut self) -> Result<{ret}, Self::Error>;"])

    trait: List[str] = ["pub trait GeneratedParser: BaseParser {"]
    for i, item in enumerate(items):
        if i:
            trait.append("")
        trait += _indent(item)
    trait.append("}")
    out.append("\n".join(trait) + "\n")

    return "\n".join(out)


def _field_type(el: Element) -> str:
    t = el.ast_type
    return {
        ElementKind.NORMAL: t,
        ElementKind.BOXED: f"ArenaBox<{t}>",
        ElementKind.REPEAT: f"ArenaIter<{t}>",
        ElementKind.OPTION: f"Option<{t}>",
        ElementKind.OPTION_WITH_BOX: f"Option<ArenaBox<{t}>>",
    }[el.kind]

def emit_ast_to_string(ir: CodegenIR, module_name: str = "generated_ast", *, manual_ast_module: str = "manual_ast") -> str:
    """
    emit_ast_to_string(ir, module_name) -> str
    ------------------------------------------
    규칙마다 타입 하나(branch → enum, product → struct). 훅 규칙은 재수출만 한다.
    """
    _preflight_check(ir)

    out: List[str] = [_header(module_name, ir, "ast"), _AST_PRELUDE]

    hooks = [f.name for f in ir.functions if isinstance(f, HookFunction)]
    if hooks:
        out.append(f"pub use super::{manual_ast_module}::{{{', '.join(hooks)}}};\n")

    for f in ir.functions:
        if isinstance(f, BranchFunction):
            lines = [_AST_DERIVE, f"pub enum {f.name} {{"]
            for v in f.variants:
                ty = f"ArenaBox<{v.name}>" if v.boxed else v.name
                lines.append(f"    {v.name}({ty}),")
            lines.append("}")
        elif isinstance(f, ProductFunction):
            fields = [el for el in f.elements if el.kind != ElementKind.TERMINAL]
            if not fields:
                lines = [_AST_DERIVE, f"pub struct {f.name} {{}}"]
            else:
                lines = [_AST_DERIVE, f"pub struct {f.name} {{"]
                for el in fields:
                    lines.append(f"    pub {_rs_ident(el.field_name)}: {_field_type(el)},")
                lines.append("}")
        else:
            continue
        out.append("\n".join(lines) + "\n")

    return "\n".join(out)

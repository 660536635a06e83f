"""
rdgen 코드 생성용 IR
=======

이 모듈은 분석 결과(FFResult, 분기 결정표, 박싱 간선)를 받아
Rust 방출기가 소비하기 쉬운 **중간표현(IR)** 으로 변환한다.

설계 포인트
-----------
- 규칙 하나당 함수 IR 하나: BranchFunction | ProductFunction | HookFunction
- 함수 목록은 규칙 이름 **정렬 순**이다. (같은 입력 → 같은 출력)
- 박싱 전파는 여기서 한다.
  * product 원소: normal → boxed, option → optionWithBox, repeat는 그대로
  * branch 변형: (branch, variant) 간선이 박싱 대상이면 boxed=True
- IR은 Grammar 객체를 참조하지 않는다. 방출기는 IR만 보고 텍스트를 만든다.
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field, asdict
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from ..grammar.ast import Grammar, BranchRule, Terminal, Modifier
from ..analysis.symbols import SymbolTable
from ..analysis.tokens import TokenMap
from ..analysis.first_follow import FFResult
from ..analysis.branches import BranchDecision, BranchCase, decide_all


class ElementKind:
    TERMINAL        = "terminal"
    NORMAL          = "normal"
    BOXED           = "boxed"
    REPEAT          = "repeat"
    OPTION          = "option"
    OPTION_WITH_BOX = "optionWithBox"


@dataclass
class Element:
    """product 본문의 원소 1개 (terminal이면 token만, 그 외에는 field_name/ast_type)."""
    kind: str
    token: Optional[str] = None
    field_name: Optional[str] = None
    ast_type: Optional[str] = None
    hook: Optional[str] = None


@dataclass
class BranchArm:
    variant: str
    first: str
    second: Optional[str] = None     # None = t1 와일드카드
    boxed: bool = False
    hook: Optional[str] = None


@dataclass
class VariantIR:
    name: str
    boxed: bool = False
    hook: Optional[str] = None


@dataclass
class BranchFunction:
    name: str
    variants: List[VariantIR]
    expected_terminals: List[str]
    sync_points_terminals: List[str]
    first_terminals: List[str]
    nullable: bool
    first_and_follow_conflict: bool
    judgeable_at0: List[BranchArm] = field(default_factory=list)
    judgeable_at1: List[BranchArm] = field(default_factory=list)
    fallback_at1: List[BranchArm] = field(default_factory=list)
    needs_backtrack: List[BranchArm] = field(default_factory=list)
    nullable_variant: Optional[VariantIR] = None   # FOLLOW 토큰/입력 끝에서 고를 빈 변형


@dataclass
class ProductFunction:
    name: str
    elements: List[Element]
    sync_points_terminals: List[str]
    first_terminals: List[str]
    nullable: bool
    first_and_follow_conflict: bool


@dataclass
class HookFunction:
    """본문 없는 product: 시그니처만 방출, 타입은 수동 AST 모듈에서 가져온다."""
    name: str
    start_token: Optional[str]
    sync_points_terminals: List[str]
    first_terminals: List[str]


ParserFunction = Union[BranchFunction, ProductFunction, HookFunction]


@dataclass
class CodegenIR:
    """
    CodegenIR
    =========
    emit_rs.py / sizes.py 가 사용하는 IR.

    Fields
    ------
    functions    : 규칙별 함수 IR (이름 정렬 순)
    hook_methods : 필드/변형 note로 지정된 수동 훅 메서드 (메서드명, 반환 타입), 이름 정렬 순
    unresolved   : 토큰 맵에 없는 리터럴 (등장 순, 중복 없음)
    boxed_edges  : 박싱된 (owner, target) 간선
    """
    functions: List[ParserFunction]
    hook_methods: List[Tuple[str, str]] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)
    boxed_edges: FrozenSet[Tuple[str, str]] = frozenset()

    def generated_type_names(self) -> List[str]:
        """생성 AST 모듈이 정의하는 타입 이름 (훅 규칙 제외)."""
        return [f.name for f in self.functions if not isinstance(f, HookFunction)]

    def to_json(self) -> str:
        """디버깅용 덤프. 함수마다 "kind" 필드(branch/product/hook)를 붙인다."""
        kinds = {BranchFunction: "branch", ProductFunction: "product", HookFunction: "hook"}
        doc = {
            "functions": [{"kind": kinds[type(f)], **asdict(f)} for f in self.functions],
            "hook_methods": [list(h) for h in self.hook_methods],
            "unresolved": list(self.unresolved),
            "boxed_edges": sorted(list(e) for e in self.boxed_edges),
        }
        return json.dumps(doc, indent=2, ensure_ascii=False) + "\n"


def _arm(case: BranchCase, variants: Dict[str, VariantIR]) -> BranchArm:
    v = variants[case.variant]
    return BranchArm(case.variant, case.first, case.second, v.boxed, v.hook)


def _element_of(member, owner: str, tokens: TokenMap, boxed: FrozenSet[Tuple[str, str]]) -> Element:
    if isinstance(member, Terminal):
        return Element(ElementKind.TERMINAL, token=tokens.resolve(member.value))

    cyclic = (owner, member.target) in boxed
    if member.modifier == Modifier.LIST:
        kind = ElementKind.REPEAT
    elif member.modifier == Modifier.OPTION:
        kind = ElementKind.OPTION_WITH_BOX if (member.is_boxed_note or cyclic) else ElementKind.OPTION
    else:
        kind = ElementKind.BOXED if (member.is_boxed_note or cyclic) else ElementKind.NORMAL
    return Element(kind, field_name=member.name, ast_type=member.target, hook=member.hook)


def build_ir(
    g: Grammar,
    sym: SymbolTable,
    ff: FFResult,
    tokens: TokenMap,
    boxed: FrozenSet[Tuple[str, str]],
    decisions: Optional[Dict[str, BranchDecision]] = None,
) -> CodegenIR:
    """
    build_ir(g, sym, ff, tokens, boxed[, decisions]) -> CodegenIR
    -------------------------------------------------------------
    decisions를 생략하면 여기서 decide_all로 계산한다.
    같은 훅 메서드 이름이 서로 다른 타입으로 쓰이면 ValueError.
    """
    if decisions is None:
        decisions = decide_all(g, ff)
    rules = g.rule_map()

    hook_methods: Dict[str, str] = {}

    def _register_hook(method: str, ret: str, where: str) -> None:
        prev = hook_methods.get(method)
        if prev is not None and prev != ret:
            raise ValueError(f"build_ir: hook '{method}' returns both {prev} and {ret} ({where})")
        hook_methods[method] = ret

    functions: List[ParserFunction] = []
    for name in sym.names:
        r = rules[name]
        follow = sorted(ff.follow[name])
        first1 = sorted(ff.first1(name))
        is_nullable = name in ff.nullable
        conflict = is_nullable and bool(ff.first1(name) & ff.follow[name])

        if isinstance(r, BranchRule):
            variants: Dict[str, VariantIR] = {}
            for v in r.variants:
                variants[v.name] = VariantIR(v.name, (name, v.name) in boxed, v.note)
                if v.note is not None:
                    _register_hook(v.note, v.name, f"branch {name}")
            d = decisions[name]
            empty = next((variants[v.name] for v in r.variants if v.name in ff.nullable), None)
            functions.append(BranchFunction(
                name=name,
                variants=list(variants.values()),
                expected_terminals=list(d.expected_terminals),
                sync_points_terminals=list(d.sync_points_terminals),
                first_terminals=first1,
                nullable=is_nullable,
                first_and_follow_conflict=conflict,
                judgeable_at0=[_arm(c, variants) for c in d.judgeable_at0],
                judgeable_at1=[_arm(c, variants) for c in d.judgeable_at1],
                fallback_at1=[_arm(c, variants) for c in d.fallback_at1],
                needs_backtrack=[_arm(c, variants) for c in d.needs_backtrack],
                nullable_variant=empty,
            ))
        elif r.is_hook:
            start = tokens.resolve(r.note) if r.note is not None else None
            functions.append(HookFunction(name, start, follow, first1))
        else:
            elements = [_element_of(m, name, tokens, boxed) for m in r.members]
            for el in elements:
                if el.hook is not None:
                    _register_hook(el.hook, el.ast_type, f"field {name}.{el.field_name}")
            functions.append(ProductFunction(
                name=name,
                elements=elements,
                sync_points_terminals=follow,
                first_terminals=first1,
                nullable=is_nullable,
                first_and_follow_conflict=conflict,
            ))

    return CodegenIR(
        functions=functions,
        hook_methods=sorted(hook_methods.items()),
        unresolved=tokens.unresolved,
        boxed_edges=boxed,
    )

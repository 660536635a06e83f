# rdgen/grammar/ast.py
"""Grammar AST
- BranchRule : branch Name { VariantA VariantB with "hook" }
- ProductRule: product Name { "lit" field: Target ?opt: T *list: T }
- ProductRule(hook): product Name with "#literal"   (본문 없음 → 수동 훅)

파싱이 끝난 Grammar는 이후 파이프라인 전체에서 **읽기 전용** 입력으로 취급한다.
"""

from __future__     import annotations
from dataclasses    import dataclass, field
from typing         import List, Optional, Union, Dict, Iterator

@dataclass(frozen=True)
class Span:
    start: int
    end: int
    line: int
    col: int

class Modifier:
    NONE   = "None"
    LIST   = "List"
    OPTION = "Option"

# 필드 note 중 박싱 요청으로 해석되는 값
BOXED_NOTE = "boxed"

@dataclass(frozen=True)
class Terminal:
    value: str      # 따옴표를 벗긴 리터럴 원문
    span: Optional[Span] = None

@dataclass(frozen=True)
class Field:
    """
    product 멤버 중 비단말 필드 1개.
    - name    : 필드 이름(AST 레코드의 필드명)
    - target  : 참조하는 규칙 이름
    - modifier: Modifier.NONE | LIST | OPTION
    - note    : "boxed" 이면 박싱 요청, 그 외 문자열이면 수동 훅 메서드 이름
    """
    name: str
    target: str
    modifier: str = Modifier.NONE
    note: Optional[str] = None
    span: Optional[Span] = None

    @property
    def is_boxed_note(self) -> bool:
        return self.note == BOXED_NOTE

    @property
    def hook(self) -> Optional[str]:
        if self.note is None or self.is_boxed_note:
            return None
        return self.note

    @property
    def may_be_empty(self) -> bool:
        """수식자만으로 ε를 허용하는지(Option/List)."""
        return self.modifier in (Modifier.OPTION, Modifier.LIST)

Member = Union[Terminal, Field]

@dataclass(frozen=True)
class BranchVariant:
    name: str
    note: Optional[str] = None      # 수동 훅 이름(있으면 parse_<Variant> 대신 호출)
    span: Optional[Span] = None

@dataclass(frozen=True)
class BranchRule:
    name: str
    variants: List[BranchVariant] = field(default_factory=list)
    span: Optional[Span] = None

@dataclass(frozen=True)
class ProductRule:
    """
    - members가 None이면 본문 없이 선언된 **수동 훅 규칙**이다.
      이때 note는 그 규칙이 시작하는 토큰 리터럴(예: "#identifier").
    - members가 빈 리스트면 빈 product(항상 nullable).
    """
    name: str
    members: Optional[List[Member]] = None
    note: Optional[str] = None
    span: Optional[Span] = None

    @property
    def is_hook(self) -> bool:
        return self.members is None

    def fields(self) -> Iterator[Field]:
        for m in self.members or []:
            if isinstance(m, Field):
                yield m

Rule = Union[BranchRule, ProductRule]

@dataclass
class Grammar:
    # 규칙 섹션(선언 순서 보존)
    rules: List[Rule] = field(default_factory=list)

    def rule_map(self) -> Dict[str, Rule]:
        """이름 → 규칙. 중복 이름 검사는 check_grammar가 담당한다."""
        return {r.name: r for r in self.rules}

    def names(self) -> List[str]:
        return [r.name for r in self.rules]

    def terminals(self) -> List[str]:
        """문법에 등장하는 모든 단말 리터럴(훅 규칙의 시작 리터럴 포함), 등장 순서 + 중복 제거."""
        seen: Dict[str, None] = {}
        for r in self.rules:
            if isinstance(r, ProductRule):
                if r.is_hook:
                    if r.note is not None:
                        seen.setdefault(r.note, None)
                    continue
                for m in r.members:
                    if isinstance(m, Terminal):
                        seen.setdefault(m.value, None)
        return list(seen)

"""
문법 구조 검사
==============

분석 단계에 들어가기 **전에** 실행되는 검사들.

- check_grammar(g, src=None)
    치명적(structural) 오류: 규칙/변형/필드 이름 중복, 선언되지 않은 규칙 참조.
    발견된 문제를 **한 번에 모두** 모아 하나의 SyntaxError로 던진다.
    src가 주어지면 각 위치에 캐럿 스니펫을 붙인다.

- collect_warnings(g, ff, decisions)
    비치명적 소견(문자열 리스트). CLI의 check 명령이 [WARN]으로 출력한다.
"""

from __future__ import annotations
from typing     import Dict, List, Optional, Mapping

from .ast       import Grammar, BranchRule, ProductRule, Rule, Span
from .parser    import snippet_at


def _where(span: Optional[Span], src: Optional[str]) -> str:
    if span is None:
        return ""
    pos = f" at {span.line}:{span.col}"
    if src is not None:
        pos += "\n" + snippet_at(src, span)
    return pos


def check_grammar(g: Grammar, src: Optional[str] = None) -> None:
    problems: List[str] = []

    # ---------- 1) 중복 이름 ----------
    first_decl: Dict[str, Rule] = {}
    for r in g.rules:
        prev = first_decl.get(r.name)
        if prev is None:
            first_decl[r.name] = r
            continue
        prev_at = f" (first declared at {prev.span.line}:{prev.span.col})" if prev.span else ""
        problems.append(f"Duplicate rule '{r.name}'{prev_at}{_where(r.span, src)}")

    # ---------- 2) 미선언 참조 ----------
    for r in g.rules:
        if isinstance(r, BranchRule):
            if not r.variants:
                problems.append(f"Branch '{r.name}' has no variants{_where(r.span, src)}")
            seen_variants = set()
            for v in r.variants:
                if v.name in seen_variants:
                    problems.append(f"Duplicate variant '{v.name}' in branch '{r.name}'{_where(v.span, src)}")
                seen_variants.add(v.name)
                if v.name not in first_decl:
                    problems.append(
                        f"Undeclared rule '{v.name}' referenced by branch '{r.name}'{_where(v.span, src)}"
                    )
        else:
            seen_fields = set()
            for f in r.fields():
                if f.name in seen_fields:
                    problems.append(f"Duplicate field '{f.name}' in product '{r.name}'{_where(f.span, src)}")
                seen_fields.add(f.name)
                if f.target not in first_decl:
                    problems.append(
                        f"Undeclared rule '{f.target}' referenced by field '{r.name}.{f.name}'{_where(f.span, src)}"
                    )

    if problems:
        raise SyntaxError("\n".join(problems))


def collect_warnings(g: Grammar, ff, decisions: Mapping[str, object]) -> List[str]:
    """
    - 훅 규칙에 시작 리터럴이 없음 → FIRST가 비어 분기 결정에 참여하지 못함
    - nullable 규칙의 FIRST(1)과 FOLLOW가 겹침 → 생략 여부를 1토큰으로 판단할 수 없음
    - needs-backtrack 결정 → 생성 코드가 시도-복원 파싱으로 내려감
    """
    out: List[str] = []
    for r in g.rules:
        if isinstance(r, ProductRule) and r.is_hook and r.note is None:
            out.append(f"hook rule '{r.name}' has no start literal; it never appears in FIRST sets")

    for name in sorted(ff.nullable):
        overlap = ff.first1(name) & ff.follow[name]
        if overlap:
            out.append(
                f"nullable rule '{name}': FIRST/FOLLOW conflict on {', '.join(sorted(overlap))}"
            )

    for name in sorted(decisions):
        d = decisions[name]
        for case in d.needs_backtrack:
            second = case.second or "_"
            out.append(
                f"branch '{name}': variant '{case.variant}' needs backtracking on ({case.first}, {second})"
            )
    return out

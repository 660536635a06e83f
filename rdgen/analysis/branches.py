"""
Branch Disambiguator
====================

branch 규칙마다 변형(variant)을 lookahead 토큰으로 고르는 **결정표**를 만든다.

분류(네 리스트는 서로 겹치지 않는다)
-----------------------------------
- judgeable_at0 : t0 하나로 유일하게 결정되는 변형
- judgeable_at1 : (t0, t1) 쌍으로 유일하게 결정되는 변형
- fallback_at1  : t0를 공유하지만 길이 1 시퀀스로만 시작하는 **유일한** 후보.
                  t1 매치가 없을 때 이 변형으로 떨어진다.
- needs_backtrack: 깊이 2로도 구분되지 않는 후보. 시도-복원 파싱으로 처리.
                  second가 None이면 t1 와일드카드(길이 1 시퀀스끼리 충돌).

우선순위 규칙
------------
같은 t0 버킷에 needs-backtrack 충돌이 하나라도 있으면, 유일한 fallback 후보도
needs-backtrack(와일드카드)으로 기록한다. 깊이 2에서 모호한 토큰은 항상 백트래킹.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..grammar.ast import Grammar, BranchRule
from .first_follow import FFResult


@dataclass(frozen=True)
class BranchCase:
    variant: str
    first: str
    second: Optional[str] = None


@dataclass(frozen=True)
class BranchDecision:
    rule: str
    expected_terminals: Tuple[str, ...]
    sync_points_terminals: Tuple[str, ...]
    judgeable_at0: Tuple[BranchCase, ...]
    judgeable_at1: Tuple[BranchCase, ...]
    fallback_at1: Tuple[BranchCase, ...]
    needs_backtrack: Tuple[BranchCase, ...]

    def all_cases(self) -> Tuple[BranchCase, ...]:
        return self.judgeable_at0 + self.judgeable_at1 + self.fallback_at1 + self.needs_backtrack


def _add_unique(bucket: List[str], name: str) -> None:
    if name not in bucket:
        bucket.append(name)


def decide_branch(rule: BranchRule, ff: FFResult) -> BranchDecision:
    # ---------- 1) t0 / (t0,t1) / fallback 버킷 ----------
    peek0: Dict[str, List[str]] = {}
    peek1: Dict[str, Dict[str, List[str]]] = {}
    fallback: Dict[str, List[str]] = {}

    for v in rule.variants:
        for seq in sorted(ff.first[v.name]):
            if not seq:
                continue  # 빈 시퀀스는 규칙 자신의 nullable 플래그가 대변
            t0 = seq[0]
            _add_unique(peek0.setdefault(t0, []), v.name)
            if len(seq) > 1:
                _add_unique(peek1.setdefault(t0, {}).setdefault(seq[1], []), v.name)
            else:
                _add_unique(fallback.setdefault(t0, []), v.name)

    # ---------- 2) 분류 ----------
    at0: List[BranchCase] = []
    at1: List[BranchCase] = []
    fb1: List[BranchCase] = []
    backtrack: List[BranchCase] = []

    for t0 in sorted(peek0):
        candidates = peek0[t0]
        if len(candidates) == 1:
            at0.append(BranchCase(candidates[0], t0))
            continue

        second = peek1.get(t0, {})
        fallbacks = fallback.get(t0, [])
        conflict = False

        for t1 in sorted(second):
            names = second[t1]
            if len(names) == 1:
                at1.append(BranchCase(names[0], t0, t1))
            else:
                conflict = True
                backtrack.extend(BranchCase(nm, t0, t1) for nm in names)

        if len(fallbacks) > 1 or (fallbacks and conflict):
            backtrack.extend(BranchCase(nm, t0, None) for nm in fallbacks)
        elif fallbacks:
            fb1.append(BranchCase(fallbacks[0], t0))

    return BranchDecision(
        rule=rule.name,
        expected_terminals=tuple(sorted(peek0)),
        sync_points_terminals=tuple(sorted(ff.follow[rule.name])),
        judgeable_at0=tuple(at0),
        judgeable_at1=tuple(at1),
        fallback_at1=tuple(fb1),
        needs_backtrack=tuple(backtrack),
    )


def decide_all(g: Grammar, ff: FFResult) -> Dict[str, BranchDecision]:
    """모든 branch 규칙의 결정표 (이름 정렬 순)."""
    out: Dict[str, BranchDecision] = {}
    for r in sorted((r for r in g.rules if isinstance(r, BranchRule)), key=lambda r: r.name):
        out[r.name] = decide_branch(r, ff)
    return out

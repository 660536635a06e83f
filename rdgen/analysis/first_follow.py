from __future__ import annotations
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Set, Tuple
from dataclasses import dataclass
from ..grammar.ast import Grammar, BranchRule, ProductRule, Terminal, Modifier
from .symbols import SymbolTable
from .tokens import TokenMap

# 길이 0, 1, 2 의 토큰 종류 튜플
TokenSeq = Tuple[str, ...]

# FIRST 시퀀스 최대 길이(lookahead 깊이)
K = 2


@dataclass(frozen=True)
class FFResult:
    """
    FFResult
    ========
    NULLABLE/FIRST/FOLLOW 계산 결과. 솔버가 끝난 뒤에는 **읽기 전용**이다.

    - nullable: ε을 유도할 수 있는 규칙 이름 집합
    - first: 규칙 이름 → FIRST(≤2) 시퀀스 집합
      * nullable 규칙은 빈 시퀀스 () 를 포함한다.
    - follow: 규칙 이름 → FOLLOW(1) 토큰 종류 집합
    """
    nullable: FrozenSet[str]
    first: Mapping[str, FrozenSet[TokenSeq]]
    follow: Mapping[str, FrozenSet[str]]

    def first1(self, name: str) -> FrozenSet[str]:
        """FIRST(name)의 첫 토큰만 모은 집합 (빈 시퀀스 제외)."""
        return frozenset(seq[0] for seq in self.first[name] if seq)


def _concat(seqs: Set[TokenSeq], suffixes: Set[TokenSeq]) -> Set[TokenSeq]:
    """seqs × suffixes 이어붙이기, 길이 K로 절단. 이미 K인 접두는 그대로."""
    out: Set[TokenSeq] = set()
    for base in seqs:
        if len(base) >= K:
            out.add(base)
            continue
        for s in suffixes:
            out.add((base + s)[:K])
    return out


def compute_nullable_first_follow(g: Grammar, sym: SymbolTable, tokens: TokenMap) -> FFResult:
    """
    compute_nullable_first_follow
    =============================
    branch/product 문법에 대해 NULLABLE/FIRST(≤2)/FOLLOW(1)을 고정점 반복으로 계산합니다.
    내부 상태는 규칙 ID로 인덱싱되는 배열이고, 반환 값은 **이름 기반** 읽기 전용 매핑입니다.

    알고리즘 개요
    ------------
    1) NULLABLE
       - branch: 변형 중 하나라도 nullable이면 nullable
       - product: 모든 멤버가 Option/List 필드이거나 nullable 대상을 가리키는 필드면 nullable
         (멤버가 없으면 nullable, 단말이 하나라도 있으면 non-nullable)
       - 본문 없는 훅 규칙은 nullable이 아님

    2) FIRST
       - product: 멤버를 왼쪽부터 이어붙이며 길이 2로 절단.
         필드는 Option/List 이거나 대상이 nullable일 때만 빈 시퀀스를 기여한다.
       - branch: 변형 FIRST의 합집합
       - 훅 규칙: {(note의 토큰 종류,)} (note가 없으면 빈 집합)

    3) FOLLOW
       - 각 product를 오른쪽→왼쪽으로 훑으며 trailer := FOLLOW(A) 로 시작
           - 단말이면 trailer := {그 토큰}
           - 필드면 FOLLOW(대상) ⊇ trailer
             (List 필드는 항목이 반복되므로 FOLLOW(대상) ⊇ FIRST1(대상) 도 추가)
           - 반드시 비어있지 않은 필드면 trailer := FIRST1(대상), 아니면 trailer ∪= FIRST1(대상)
       - branch B의 각 변형 V: FOLLOW(V) ⊇ FOLLOW(B)
       변화가 없을 때까지 반복

    모든 집합은 유한한 범위(규칙 수 × 토큰 수²) 안에서 커지기만 하므로 반복은 반드시 끝납니다.
    """
    rules = g.rule_map()
    n = len(sym)
    rule_of = [rules[sym.name_of(i)] for i in range(n)]

    # ---------- 1) NULLABLE 고정점 ----------
    nullable: List[bool] = [False] * n

    changed = True
    while changed:
        changed = False
        for i, r in enumerate(rule_of):
            if nullable[i]:
                continue
            if isinstance(r, BranchRule):
                now = any(nullable[sym.id_of(v.name)] for v in r.variants)
            elif r.is_hook:
                now = False
            else:
                now = True
                for m in r.members:
                    if isinstance(m, Terminal):
                        now = False
                        break
                    if m.may_be_empty:
                        continue
                    if not nullable[sym.id_of(m.target)]:
                        now = False
                        break
            if now:
                nullable[i] = True
                changed = True

    # ---------- 2) FIRST 고정점 ----------
    first: List[Set[TokenSeq]] = [set() for _ in range(n)]

    def member_first(m) -> Set[TokenSeq]:
        if isinstance(m, Terminal):
            return {(tokens.resolve(m.value),)}
        tid = sym.id_of(m.target)
        out = set(first[tid])
        if m.may_be_empty or nullable[tid]:
            out.add(())
        return out

    changed = True
    while changed:
        changed = False
        for i, r in enumerate(rule_of):
            before = len(first[i])
            if isinstance(r, BranchRule):
                for v in r.variants:
                    first[i] |= first[sym.id_of(v.name)]
            elif r.is_hook:
                if r.note is not None:
                    first[i].add((tokens.resolve(r.note),))
            else:
                seqs: Set[TokenSeq] = {()}
                for m in r.members:
                    seqs = _concat(seqs, member_first(m))
                    if all(len(s) >= K for s in seqs):
                        break
                first[i] |= seqs
            if len(first[i]) != before:
                changed = True

    def first1(i: int) -> Set[str]:
        return {s[0] for s in first[i] if s}

    # ---------- 3) FOLLOW 고정점 ----------
    follow: List[Set[str]] = [set() for _ in range(n)]

    changed = True
    while changed:
        changed = False
        for i, r in enumerate(rule_of):
            if isinstance(r, BranchRule):
                for v in r.variants:
                    vid = sym.id_of(v.name)
                    before = len(follow[vid])
                    follow[vid] |= follow[i]
                    if len(follow[vid]) != before:
                        changed = True
                continue
            if r.is_hook:
                continue

            trailer: Set[str] = set(follow[i])  # 오른쪽에서 왼쪽으로 전파될 집합
            for m in reversed(r.members):
                if isinstance(m, Terminal):
                    trailer = {tokens.resolve(m.value)}
                    continue
                tid = sym.id_of(m.target)
                before = len(follow[tid])
                follow[tid] |= trailer
                if m.modifier == Modifier.LIST:
                    follow[tid] |= first1(tid)
                if len(follow[tid]) != before:
                    changed = True
                # trailer 갱신: FIRST1(X) ∪ (X가 비어있을 수 있으면 trailer)
                if m.may_be_empty or nullable[tid]:
                    trailer = trailer | first1(tid)
                else:
                    trailer = first1(tid)

    # ---------- 4) 고정(freeze) ----------
    names = [sym.name_of(i) for i in range(n)]
    return FFResult(
        nullable=frozenset(names[i] for i in range(n) if nullable[i]),
        first=MappingProxyType({names[i]: frozenset(first[i]) for i in range(n)}),
        follow=MappingProxyType({names[i]: frozenset(follow[i]) for i in range(n)}),
    )

"""
Recursion / Indirection Analyzer
================================

"값으로 직접 품을 수 있음" 그래프에서 순환을 찾아, 순환을 닫는 간선을 박싱 대상으로 표시한다.

그래프
------
- branch B → 각 변형 V              (enum 변형이 V를 값으로 가진다)
- product A → 필드 대상 T           (List 필드 제외: 리스트는 이미 arena 밖에 저장)
                                    (with "boxed" 필드 제외: 이미 간접 참조)
- 본문 없는 훅 규칙은 간선이 없다.

탐색
----
명시적 스택을 쓰는 반복 DFS. 규칙 ID로 인덱싱되는 상태 배열
(0=미방문, 1=현재 경로 위, 2=완료)을 둔다. 루트는 ID 순(=이름 정렬 순),
이웃은 선언 순으로 방문하므로 같은 입력이면 항상 같은 간선이 박싱된다.
"""

from __future__ import annotations
from typing import FrozenSet, List, Set, Tuple

from ..grammar.ast import Grammar, BranchRule, Modifier
from .symbols import SymbolTable

Edge = Tuple[str, str]

_UNSEEN, _ON_PATH, _DONE = 0, 1, 2


def build_embed_graph(g: Grammar, sym: SymbolTable) -> List[List[int]]:
    """ID → 이웃 ID 리스트 (선언 순, 중복 허용)."""
    adj: List[List[int]] = [[] for _ in range(len(sym))]
    for r in g.rules:
        src = sym.id_of(r.name)
        if isinstance(r, BranchRule):
            for v in r.variants:
                adj[src].append(sym.id_of(v.name))
        elif not r.is_hook:
            for f in r.fields():
                if f.modifier == Modifier.LIST or f.is_boxed_note:
                    continue
                adj[src].append(sym.id_of(f.target))
    return adj


def find_boxed_edges(g: Grammar, sym: SymbolTable) -> FrozenSet[Edge]:
    adj = build_embed_graph(g, sym)
    state = [_UNSEEN] * len(sym)
    boxed: Set[Edge] = set()

    for root in range(len(sym)):
        if state[root] != _UNSEEN:
            continue
        state[root] = _ON_PATH
        stack: List[Tuple[int, int]] = [(root, 0)]   # (노드, 다음에 볼 이웃 인덱스)
        while stack:
            node, idx = stack[-1]
            nbrs = adj[node]
            if idx == len(nbrs):
                state[node] = _DONE
                stack.pop()
                continue
            stack[-1] = (node, idx + 1)
            to = nbrs[idx]
            if state[to] == _ON_PATH:
                # back-edge: 순환을 닫는 간선
                boxed.add((sym.name_of(node), sym.name_of(to)))
            elif state[to] == _UNSEEN:
                state[to] = _ON_PATH
                stack.append((to, 0))

    return frozenset(boxed)

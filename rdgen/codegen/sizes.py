"""
생성 AST 타입 크기 검사 (ci 모드)
================================

rustc `-Zprint-type-size` 출력에서 생성 타입의 크기만 골라내 임계값을 넘는 것을 경고한다.

    print-type-size type: `parser::generated_ast::Expr`: 24 bytes, alignment: 8 bytes

- 경로/제네릭 인자는 무시하고 마지막 이름으로 비교한다.
- 같은 타입이 여러 번 나오면 가장 큰 값을 쓴다.
- 임계값 초과는 경고일 뿐 실패가 아니다.
"""

from __future__ import annotations
import regex as re
from dataclasses import dataclass
from typing import Dict, Iterable, List

DEFAULT_MAX_TYPE_SIZE = 64

_LINE_RE = re.compile(r"print-type-size type: `(?P<name>[^`]+)`: (?P<size>\d+) bytes")


@dataclass(frozen=True)
class TypeSize:
    name: str
    size: int


def _base_name(path: str) -> str:
    # `a::b::Foo<'a, T>` → `Foo`
    return path.split("<", 1)[0].rsplit("::", 1)[-1].strip()


def parse_type_sizes(report: str, type_names: Iterable[str]) -> List[TypeSize]:
    """보고서에서 type_names에 속한 타입만 (크기 내림차순, 이름 오름차순)."""
    wanted = set(type_names)
    best: Dict[str, int] = {}
    for m in _LINE_RE.finditer(report):
        name = _base_name(m.group("name"))
        if name not in wanted:
            continue
        size = int(m.group("size"))
        if size > best.get(name, -1):
            best[name] = size
    return sorted((TypeSize(n, s) for n, s in best.items()), key=lambda t: (-t.size, t.name))


def oversized(sizes: Iterable[TypeSize], limit: int = DEFAULT_MAX_TYPE_SIZE) -> List[TypeSize]:
    return [t for t in sizes if t.size > limit]


def format_size_report(sizes: Iterable[TypeSize], limit: int = DEFAULT_MAX_TYPE_SIZE) -> str:
    lines = [f"{'type':<32} {'bytes':>6}"]
    for t in sizes:
        mark = "  !" if t.size > limit else ""
        lines.append(f"{t.name:<32} {t.size:>6}{mark}")
    return "\n".join(lines)

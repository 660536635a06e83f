"""
Token Resolver
==============

단말 리터럴("fn", "(", "#identifier" ...)을 Rust 토큰 종류 표현식으로 바꾼다.

토큰 맵 파일 형식 (한 줄에 한 쌍, 빈 줄 허용)
---------------------------------------------
    "fn","Token::Keyword(Keyword::Fn)"
    "#identifier","Token::Identifier($Span$)"

- 토큰 종류 문자열은 생성 코드에 **그대로** 들어간다.
- `$...$` 자리표시자는 값(payload) 위치다. 패턴으로 쓸 때는 `_`로 치환한다.
- 매핑이 없는 리터럴은 치명적 오류가 아니다: 리터럴을 주석으로 단 UNKNOWN_TOKEN
  자리표시자로 대체하고 누락 목록에 모아 두었다가 한 번에 보고한다.
"""

from __future__ import annotations
import regex as re
from pathlib    import Path
from typing     import Dict, Iterable, List, Mapping, Optional, Tuple

UNKNOWN_TOKEN = "UnknownToken"

_LINE_RE = re.compile(r'^\s*"(?P<lit>[^"]*)"\s*,\s*"(?P<kind>[^"]*)"')
_PLACEHOLDER_RE = re.compile(r"\$[^$]*\$")


class TokenMap:
    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._map: Dict[str, str] = dict(mapping or {})
        # 읽다가 건너뛴 (줄 번호, 원문). 헤더/주석 줄 등
        self.skipped: List[Tuple[int, str]] = []
        # 등장 순서 보존 + 중복 제거
        self._missing: Dict[str, None] = {}

    @classmethod
    def from_csv_text(cls, text: str) -> "TokenMap":
        """
        `"lit","Kind"` 쌍만 읽는다. 쌍 뒤의 나머지 열은 무시하고,
        쌍을 이루지 못하는 줄(헤더, 주석 등)은 건너뛰되 skipped에 남긴다.
        """
        mapping: Dict[str, str] = {}
        skipped: List[Tuple[int, str]] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            m = _LINE_RE.match(line)
            if not m or not m.group("lit") or not m.group("kind"):
                skipped.append((lineno, line))
                continue
            mapping[m.group("lit")] = m.group("kind")
        tm = cls(mapping)
        tm.skipped = skipped
        return tm

    @classmethod
    def identity(cls, literals: Iterable[str]) -> "TokenMap":
        """토큰 맵 없이 문법만 검사할 때: 리터럴 원문을 그대로 토큰 종류로 쓴다."""
        return cls({lit: lit for lit in literals})

    # ----- 조회 -----
    def lookup(self, literal: str) -> Optional[str]:
        """순수 조회: 없으면 None."""
        return self._map.get(literal)

    def resolve(self, literal: str) -> str:
        """조회 + 실패 기록. 없으면 unknown_kind(literal)."""
        kind = self._map.get(literal)
        if kind is None:
            self._missing.setdefault(literal, None)
            return unknown_kind(literal)
        return kind

    def items(self) -> List[Tuple[str, str]]:
        """(리터럴, 종류) 쌍, 파일에 적힌 순서."""
        return list(self._map.items())

    @property
    def unresolved(self) -> List[str]:
        return list(self._missing)

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, literal: str) -> bool:
        return literal in self._map


def load_token_map(path: str) -> TokenMap:
    return TokenMap.from_csv_text(Path(path).read_text(encoding="utf-8"))


# ---------- 토큰 종류 문자열 유틸 ----------
def unknown_kind(literal: str) -> str:
    """
    매핑 없는 리터럴의 자리표시 종류: `UnknownToken /* "while" */`.
    리터럴마다 다른 문자열이므로 서로 다른 미해결 리터럴이 같은 t0 버킷에 섞이지 않는다.
    """
    text = literal.replace("$", "\\x24").replace("/*", "/ *").replace("*/", "* /")
    return f'{UNKNOWN_TOKEN} /* "{text}" */'

def has_payload(kind: str) -> bool:
    """`Token::Identifier($Span$)` 처럼 값 자리표시자를 가진 종류인가."""
    return _PLACEHOLDER_RE.search(kind) is not None

def token_pattern(kind: str) -> str:
    """match 패턴용: 자리표시자를 와일드카드로."""
    return _PLACEHOLDER_RE.sub("_", kind)

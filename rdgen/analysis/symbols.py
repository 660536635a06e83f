"""규칙 이름에 정수 ID를 부여해 분석 단계에서 배열 인덱스로 쓰기 쉽게 합니다."""
from __future__     import annotations
from dataclasses    import dataclass, field
from typing         import Dict, Iterable, List

@dataclass
class SymbolTable:
    """
    SymbolTable
    ===========
    규칙(비단말) **이름 ↔ 정수 ID 매핑**을 관리하는 테이블입니다.
    FIRST/FOLLOW 솔버와 순환 탐지기는 이 ID로 인덱싱되는 배열(arena)에 상태를 둡니다.

    설계 원칙
    --------
    - ID는 규칙 이름의 **사전순 정렬** 순서로 0..N-1을 배정합니다.
      (순환 탐지의 루트 순회 순서가 곧 ID 순서가 되어 결과가 재현 가능)
    - freeze() 이후에는 이름↔ID 매핑이 **불변**입니다.
    - 단말(토큰 종류)은 여기서 다루지 않습니다. 토큰은 TokenMap이 문자열 그대로 관리합니다.

    주요 메서드
    ----------
    - freeze(names): 규칙 이름 집합으로 테이블을 확정
    - id_of(name) / name_of(id): 이름 ↔ ID 변환
    """

    _name_to_id: Dict[str, int] = field(default_factory=dict)
    _id_to_name: List[str] = field(default_factory=list)
    _frozen: bool = False

    def freeze(self, names: Iterable[str]) -> None:
        if self._frozen:
            return

        for i, nm in enumerate(sorted(set(names))):
            self._name_to_id[nm] = i
            self._id_to_name.append(nm)

        self._frozen = True

    # ----- 조회 / 유틸 -----
    def id_of(self, name: str) -> int:
        """규칙 이름을 ID로 변환합니다. 존재하지 않으면 KeyError."""
        return self._name_to_id[name]

    def name_of(self, id_: int) -> str:
        """ID를 규칙 이름으로 변환합니다. 범위를 벗어나면 IndexError."""
        return self._id_to_name[id_]

    def __contains__(self, name: str) -> bool:
        return name in self._name_to_id

    def __len__(self) -> int:
        return len(self._id_to_name)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def names(self) -> List[str]:
        """ID 순(=정렬 순) 규칙 이름 목록의 사본."""
        return list(self._id_to_name)

    def __repr__(self) -> str:
        return f"SymbolTable(rules={self._id_to_name})"

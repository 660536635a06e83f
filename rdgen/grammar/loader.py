"""문법(.rdg) 파일 로더: 텍스트 읽기 → 파싱 → 구조 검사"""

from __future__ import annotations
from pathlib    import Path
from typing     import Tuple

from .ast       import Grammar


def load_grammar_text(path: str) -> str:
    """
    Load Grammar Text (개행은 \\n 으로 정규화)
    """
    text = Path(path).read_text(encoding="utf-8")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def load_grammar(path: str) -> Tuple[str, Grammar]:
    """
    파일을 읽어 (원문, 검사를 통과한 Grammar)를 돌려준다.
    구문 오류/중복 이름/미선언 참조는 SyntaxError로 즉시 중단.
    """
    from .parser import parse_grammar
    from .check import check_grammar

    src = load_grammar_text(path)
    g = parse_grammar(src)
    check_grammar(g, src)
    return src, g

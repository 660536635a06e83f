# rdgen/__init__.py
"""rdgen: branch/product 문법에서 재귀 하강 파서(Rust)와 AST 타입을 생성한다."""

__version__ = "0.1.0"

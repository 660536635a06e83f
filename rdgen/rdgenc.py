# rdgen/rdgenc.py
"""rdgenc – rdgen CLI

사용 예)
    $ python -m rdgen.rdgenc check grammar.rdg --token-map token_map.csv -D
    $ python -m rdgen.rdgenc build grammar.rdg --token-map token_map.csv \\
          -o src/parser/generated_parser.rs --ast-output src/parser/generated_ast.rs
    $ RDGEN_MODE=ci python -m rdgen.rdgenc build ... --type-sizes target/type-sizes.txt
    $ python -m rdgen.rdgenc diagram grammar.rdg -o grammar.html

기능
----
- check   : 문법을 읽어 파이프라인(AST→검사→NULLABLE/FIRST/FOLLOW→분기 결정→박싱) 검증 및 요약 출력
- build   : 파서 트레이트(.rs)와 AST 타입(.rs)을 방출
            --token-output을 주면 토큰 맵에서 토크나이저 스캐너(.rs)도 방출
            ci 모드에서는 rustfmt로 정리하고 타입 크기 보고서를 검사
- diagram : 문법 구조를 Mermaid 클래스 다이어그램(HTML)으로 방출

디버그 모드(-D/--debug)를 켜면 집합/결정표/박싱 간선 요약을 stderr로 출력합니다.

종료 코드: 0=성공, 1=토큰 매핑 누락(파일은 생성됨), 2=문법/입력 오류
"""

from __future__ import annotations
import argparse
import os
import pathlib
import re
import subprocess
import sys
from typing import Optional

MODES = ("dev", "ci")
MODE_ENV = "RDGEN_MODE"

# ------------------------------
# 헬퍼
# ------------------------------

def _eprint(*args, **kw) -> None:
    print(*args, file=sys.stderr, **kw)


def _sanitize_rs_mod_name(name: str) -> str:
    """Rust 모듈명 규칙에 맞춰 파일명을 식별자로 변환."""
    stem = pathlib.Path(name).stem
    stem = re.sub(r"[^A-Za-z0-9_]", "_", stem)
    if not stem or not re.match(r"[A-Za-z_]", stem[0]):
        stem = "parser_" + (stem or "out")
    return stem


def _write(path: pathlib.Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")

# ------------------------------
# 파이프라인 로딩
# ------------------------------

def _load_pipeline(grammar_path: str, token_map_path: Optional[str], debug: bool):
    """
    문법 파일을 읽어 AST→구조 검사→심볼→NULLABLE/FIRST/FOLLOW→분기 결정→박싱 간선까지 계산.
    token_map_path가 없으면 리터럴 원문을 토큰 종류로 쓰는 항등 맵으로 분석한다.
    """
    from .grammar.loader import load_grammar
    from .analysis.symbols import SymbolTable
    from .analysis.tokens import TokenMap, load_token_map
    from .analysis.first_follow import compute_nullable_first_follow
    from .analysis.branches import decide_all
    from .analysis.recursion import find_boxed_edges

    _, g = load_grammar(grammar_path)
    if debug: _eprint("[DEBUG] AST ready | rules=%d" % len(g.rules))

    if token_map_path:
        tokens = load_token_map(token_map_path)
        for lineno, line in tokens.skipped:
            _eprint(f"[WARN] token map line {lineno} skipped (expected \"literal\",\"TokenKind\"): {line!r}")
        if debug: _eprint("[DEBUG] token map loaded | entries=%d" % len(tokens))
    else:
        tokens = TokenMap.identity(g.terminals())
        if debug: _eprint("[DEBUG] no token map; using literals as token kinds")

    sym = SymbolTable()
    sym.freeze(g.names())
    if debug: _eprint("[DEBUG] SymbolTable frozen | rules=%d" % len(sym))

    ff = compute_nullable_first_follow(g, sym, tokens)
    if debug: _eprint("[DEBUG] NULLABLE/FIRST/FOLLOW computed | nullable=%d" % len(ff.nullable))

    decisions = decide_all(g, ff)
    if debug: _eprint("[DEBUG] branch decisions built | branches=%d" % len(decisions))

    boxed = find_boxed_edges(g, sym)
    if debug: _eprint("[DEBUG] cycles analyzed | boxed edges=%d" % len(boxed))

    return g, sym, tokens, ff, decisions, boxed

# ------------------------------
# 디버그 출력 헬퍼
# ------------------------------

def _fmt_seq(seq) -> str:
    return "(" + ", ".join(seq) + ")" if seq else "ε"

def _print_sets(sym, ff) -> None:
    _eprint("\n[NULLABLE]")
    _eprint(", ".join(sorted(ff.nullable)) if ff.nullable else "(none)")

    _eprint("\n[FIRST(≤2)]")
    for A in sym.names:
        items = sorted(ff.first[A])
        _eprint(f"{A:>16} : {{{', '.join(_fmt_seq(s) for s in items)}}}")

    _eprint("\n[FOLLOW(1)]")
    for A in sym.names:
        _eprint(f"{A:>16} : {{{', '.join(sorted(ff.follow[A]))}}}")

def _print_decisions(decisions) -> None:
    _eprint("\n[Branch Decisions]")
    for name, d in decisions.items():
        _eprint(f"{name}: expected={{{', '.join(d.expected_terminals)}}}")
        for label, cases in (("peek0", d.judgeable_at0), ("peek1", d.judgeable_at1),
                             ("fallback", d.fallback_at1), ("backtrack", d.needs_backtrack)):
            for c in cases:
                second = "" if label in ("peek0", "fallback") else f", {c.second or '_'}"
                _eprint(f"  {label:<9} ({c.first}{second}) -> {c.variant}")

def _print_boxed(boxed) -> None:
    _eprint("\n[Boxed Edges]")
    if not boxed:
        _eprint("(none)")
    for owner, target in sorted(boxed):
        _eprint(f"  {owner} -> {target}")

def _report_unresolved(tokens) -> int:
    if not tokens.unresolved:
        return 0
    _eprint(f"[ERROR] {len(tokens.unresolved)} literal(s) have no token mapping:")
    for lit in tokens.unresolved:
        _eprint(f'  "{lit}"')
    return 1

# ------------------------------
# 커맨드 구현
# ------------------------------

def cmd_check(args) -> int:
    from .grammar.check import collect_warnings

    try:
        g, sym, tokens, ff, decisions, boxed = _load_pipeline(args.file, args.token_map, debug=args.debug)
    except SyntaxError as e:
        _eprint("[SYNTAX ERROR]")
        _eprint(str(e))
        return 2
    except Exception as e:
        _eprint("[ERROR]", type(e).__name__, str(e))
        return 2

    if args.debug:
        _print_sets(sym, ff)
        _print_decisions(decisions)
        _print_boxed(boxed)

    for w in collect_warnings(g, ff, decisions):
        _eprint("[WARN]", w)

    n_backtrack = sum(len(d.needs_backtrack) for d in decisions.values())
    print(f"[CHECK OK] rules={len(sym)} branches={len(decisions)} nullable={len(ff.nullable)} "
          f"backtrack={n_backtrack} boxed={len(boxed)} unresolved={len(tokens.unresolved)}")
    return _report_unresolved(tokens)


def _resolve_mode(args) -> Optional[str]:
    mode = args.mode or os.environ.get(MODE_ENV) or "dev"
    if mode not in MODES:
        _eprint(f"[ERROR] Unknown build mode: {mode!r} (expected one of {', '.join(MODES)})")
        return None
    return mode


def _run_rustfmt(rustfmt: str, paths, debug: bool) -> None:
    cmd = [rustfmt, "--edition", "2021", *[str(p) for p in paths]]
    if debug: _eprint("[DEBUG] run: " + " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        _eprint(f"[WARN] formatter not found: {rustfmt}; output left unformatted")
        return
    if proc.returncode != 0:
        _eprint(f"[WARN] {rustfmt} exited with {proc.returncode}")
        if proc.stderr:
            _eprint(proc.stderr.rstrip())


def _check_type_sizes(report_path: Optional[str], ir, limit: int) -> None:
    from .codegen.sizes import parse_type_sizes, oversized, format_size_report

    if not report_path:
        _eprint("[WARN] ci mode without --type-sizes; type size validation skipped")
        return
    try:
        report = pathlib.Path(report_path).read_text(encoding="utf-8")
    except OSError as e:
        _eprint(f"[WARN] cannot read type size report: {e}")
        return
    sizes = parse_type_sizes(report, ir.generated_type_names())
    print("[TYPE SIZES]")
    print(format_size_report(sizes, limit))
    for t in oversized(sizes, limit):
        _eprint(f"[WARN] type {t.name} is {t.size} bytes (limit {limit})")


def cmd_build(args) -> int:
    mode = _resolve_mode(args)
    if mode is None:
        return 2

    try:
        g, sym, tokens, ff, decisions, boxed = _load_pipeline(args.file, args.token_map, debug=args.debug)
    except SyntaxError as e:
        _eprint("[SYNTAX ERROR]")
        _eprint(str(e))
        return 2
    except Exception as e:
        _eprint("[ERROR]", type(e).__name__, str(e))
        return 2

    if args.debug:
        _print_sets(sym, ff)
        _print_decisions(decisions)
        _print_boxed(boxed)

    n_backtrack = sum(len(d.needs_backtrack) for d in decisions.values())
    if n_backtrack:
        _eprint(f"[WARN] {n_backtrack} branch case(s) need backtracking; see `check -D`.")

    # ---- IR 생성 / 방출 ----
    from .codegen.ir import build_ir
    from .codegen.emit_rs import emit_parser_to_string, emit_ast_to_string

    parser_path = pathlib.Path(args.output)
    ast_path = pathlib.Path(args.ast_output)
    try:
        ir = build_ir(g, sym, ff, tokens, boxed, decisions)
        ast_module = _sanitize_rs_mod_name(ast_path.name)
        parser_src = emit_parser_to_string(
            ir,
            module_name=args.module or _sanitize_rs_mod_name(parser_path.name),
            ast_module=ast_module,
        )
        ast_src = emit_ast_to_string(ir, module_name=ast_module, manual_ast_module=args.manual_ast)
    except ValueError as e:
        _eprint("[ERROR]", str(e))
        return 2

    _write(parser_path, parser_src)
    _write(ast_path, ast_src)
    print(f"[EMIT] mode={mode} parser -> {parser_path}")
    print(f"[EMIT] mode={mode} ast    -> {ast_path}")
    if args.debug:
        _eprint(f"[DEBUG] bytes parser={len(parser_src)} ast={len(ast_src)}")

    if args.token_output:
        from .codegen.emit_tokenmap import emit_token_scanner_to_string
        token_path = pathlib.Path(args.token_output)
        _write(token_path, emit_token_scanner_to_string(tokens, _sanitize_rs_mod_name(token_path.name)))
        print(f"[EMIT] mode={mode} tokens -> {token_path}")

    if args.ir_json:
        ir_path = pathlib.Path(args.ir_json)
        _write(ir_path, ir.to_json())
        print(f"[EMIT] ir -> {ir_path}")

    if mode == "ci":
        _run_rustfmt(args.rustfmt, [parser_path, ast_path], args.debug)
        _check_type_sizes(args.type_sizes, ir, args.max_type_size)

    return _report_unresolved(tokens)


def cmd_diagram(args) -> int:
    try:
        from .grammar.loader import load_grammar
        from .codegen.emit_mermaid import emit_mermaid_html
        _, g = load_grammar(args.file)
    except SyntaxError as e:
        _eprint("[SYNTAX ERROR]")
        _eprint(str(e))
        return 2
    except Exception as e:
        _eprint("[ERROR]", type(e).__name__, str(e))
        return 2

    out_path = pathlib.Path(args.output)
    _write(out_path, emit_mermaid_html(g, title=pathlib.Path(args.file).name))
    print(f"[EMIT] diagram -> {out_path}")
    return 0


# ------------------------------
# 엔트리포인트
# ------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="rdgenc", description="rdgen recursive-descent parser generator CLI")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_check = sub.add_parser("check", help="문법을 분석해 결정표/박싱/경고를 확인합니다")
    p_check.add_argument("file", help="문법 파일")
    p_check.add_argument("--token-map", help="리터럴→토큰 종류 CSV (없으면 리터럴 원문으로 분석)")
    p_check.add_argument("-D", "--debug", action="store_true", help="디버그 정보를 상세 출력")
    p_check.set_defaults(func=cmd_check)

    p_build = sub.add_parser("build", help="Rust 파서 트레이트와 AST 타입을 생성합니다")
    p_build.add_argument("file", help="문법 파일")
    p_build.add_argument("--token-map", required=True, help="리터럴→토큰 종류 CSV")
    p_build.add_argument("-o", "--output", required=True, help="파서 출력 파일 경로")
    p_build.add_argument("--ast-output", required=True, help="AST 타입 출력 파일 경로")
    p_build.add_argument("-m", "--module", help="파서 모듈 이름(미지정시 출력 파일명에서 유도)")
    p_build.add_argument("--manual-ast", default="manual_ast", help="수동 AST 모듈 이름 (훅 규칙 타입 재수출)")
    p_build.add_argument("--mode", choices=MODES, help=f"빌드 모드 (기본: ${MODE_ENV} 또는 dev)")
    p_build.add_argument("--type-sizes", help="(ci) rustc -Zprint-type-size 출력 파일")
    p_build.add_argument("--max-type-size", type=int, default=64, help="(ci) 타입 크기 경고 임계값(bytes)")
    p_build.add_argument("--rustfmt", default="rustfmt", help="(ci) rustfmt 실행 파일")
    p_build.add_argument("--token-output", help="토큰 맵에서 만든 토크나이저 스캐너(.rs) 출력 경로")
    p_build.add_argument("--ir-json", help="IR을 JSON으로 덤프할 경로")
    p_build.add_argument("-D", "--debug", action="store_true", help="디버그 정보를 상세 출력")
    p_build.set_defaults(func=cmd_build)

    p_diag = sub.add_parser("diagram", help="문법 구조 다이어그램(HTML)을 생성합니다")
    p_diag.add_argument("file", help="문법 파일")
    p_diag.add_argument("-o", "--output", required=True, help="HTML 출력 경로")
    p_diag.set_defaults(func=cmd_diagram)

    args = ap.parse_args(argv)
    return int(args.func(args))

if __name__ == "__main__":
    sys.exit(main())

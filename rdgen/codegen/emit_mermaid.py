"""문법 구조를 Mermaid classDiagram으로 그려 단독 HTML 페이지로 방출한다.

- branch  : `Base <|-- Variant` 상속 화살표
- product : 필드 목록(`+Target[] name`, `+Target? name`)과 `Owner --> Target` 참조
- 훅 규칙 : `<<manual>>` 주석만
"""

from __future__ import annotations
import html
from typing import List

from ..grammar.ast import Grammar, BranchRule, Modifier

_MOD_MARK = {Modifier.NONE: "", Modifier.LIST: "[]", Modifier.OPTION: "?"}


def emit_mermaid(g: Grammar) -> str:
    lines: List[str] = ["classDiagram"]
    for r in g.rules:
        if isinstance(r, BranchRule):
            lines.append(f"    class {r.name}")
            lines.append(f"    <<branch>> {r.name}")
            for v in r.variants:
                lines.append(f"    {r.name} <|-- {v.name}")
        elif r.is_hook:
            lines.append(f"    class {r.name}")
            lines.append(f"    <<manual>> {r.name}")
        else:
            fields = list(r.fields())
            if fields:
                lines.append(f"    class {r.name} {{")
                for f in fields:
                    lines.append(f"        +{f.target}{_MOD_MARK[f.modifier]} {f.name}")
                lines.append("    }")
            else:
                lines.append(f"    class {r.name}")
            # 같은 대상을 여러 필드가 가리켜도 화살표는 하나
            for target in dict.fromkeys(f.target for f in fields):
                lines.append(f"    {r.name} --> {target}")
    return "\n".join(lines)


_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <script src="https://cdn.jsdelivr.net/npm/mermaid/dist/mermaid.min.js"></script>
    <script src="https://cdn.jsdelivr.net/npm/svg-pan-zoom@3.6.1/dist/svg-pan-zoom.min.js"></script>
    <style>
        body, html {{ margin: 0; padding: 0; width: 100%; height: 100%; overflow: hidden; background-color: #f8f9fa; font-family: sans-serif; }}
        h1 {{ position: absolute; top: 10px; left: 20px; z-index: 1000; background: rgba(255, 255, 255, 0.8); padding: 5px 15px; border-radius: 5px; pointer-events: none; }}
        .mermaid {{ visibility: hidden; width: 100vw; height: 100vh; background: white; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <pre class="mermaid">
{diagram}
    </pre>
    <script>
        mermaid.initialize({{ startOnLoad: false, theme: 'neutral', maxTextSize: 1000000, class: {{ useMaxWidth: false }} }});

        async function draw() {{
            await mermaid.run({{ nodes: document.querySelectorAll('.mermaid') }});
            const svg = document.querySelector('.mermaid svg');
            if (!svg) return;
            svg.style.visibility = 'visible';
            svg.style.width = '100%';
            svg.style.height = '100%';
            svg.style.maxWidth = 'none';
            svgPanZoom(svg, {{ zoomEnabled: true, controlIconsEnabled: true, fit: true, center: true, minZoom: 0.01, maxZoom: 20 }});
        }}

        draw();
    </script>
</body>
</html>
"""


def emit_mermaid_html(g: Grammar, title: str = "Grammar Structure") -> str:
    # <<branch>> 같은 꺾쇠는 HTML 이스케이프 (mermaid는 textContent를 읽는다)
    return _HTML_TEMPLATE.format(title=html.escape(title), diagram=html.escape(emit_mermaid(g), quote=False))

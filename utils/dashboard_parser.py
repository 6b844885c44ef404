"""
Markdown to dashboard widgets.

parse_tab_content() pulls Mermaid diagrams, labelled numbers (KPIs),
markdown tables, dated milestones and headed lists out of a tab's
generated markdown. When nothing structured is found the whole text
becomes a single "text" widget.
"""

import re
from dataclasses import dataclass
from typing import Any, List, Optional

DIAGRAM_BLOCK = re.compile(r"```(?:mermaid|diagram)?\s*\n(.*?)```", re.S)
DIAGRAM_TYPE = re.compile(
    r"^(graph|flowchart|sequenceDiagram|classDiagram|stateDiagram|erDiagram|"
    r"journey|gantt|pie|gitgraph|mindmap|timeline)",
    re.I,
)
HEADING = re.compile(r"#{1,6}\s+(.+?)$", re.M)
KPI = re.compile(
    r"\*\*([^*]+?):\*\*\s*(\d+(?:\.\d+)?)\s*(?:/\s*(\d+(?:\.\d+)?))?\s*(?:\(([^)]+)\))?"
    r"|(\w+(?:\s+\w+)*):\s*(\d+(?:\.\d+)?)\s*(?:/\s*(\d+(?:\.\d+)?))?\s*(?:\(([^)]+)\))?",
    re.M,
)
TABLE_SEPARATOR = re.compile(r"^\|(?:[\s:-]+\|)+$")
MILESTONE = re.compile(
    r"(?:^|\n)\s*(?:\*\*|-)?\s*(.+?):\s*"
    r"((?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+\d{4}|\d{4}-\d{2}-\d{2})",
    re.I | re.M,
)
HEADED_LIST = re.compile(r"#{1,6}\s+(.+?)\n((?:(?:\*|-|\d+\.)\s+.+\n?)+)", re.M)
LIST_MARKER = re.compile(r"^(?:\*|-|\d+\.)\s+")

# A headed list needs more than this many items to become a widget
MIN_LIST_ITEMS = 2

TAB_DISPLAY_NAMES = {
    "trialOverview": "Trial Overview",
    "taskChecklists": "Task Checklists",
    "teamWorkflows": "Team Workflows",
    "trialTimeline": "Trial Timeline",
    "qualityMetrics": "Quality Metrics",
    "protocolRequirements": "Protocol Requirements",
    "documentControl": "Document Control",
    "complianceDiagrams": "Compliance Diagrams",
    "riskControls": "Risk & Controls",
    "auditPreparation": "Audit Preparation",
    "smartAlerts": "Smart Alerts",
}


@dataclass
class ParsedWidget:
    widget_type: str
    title: str
    content: Any
    raw_content: str
    order: int


def tab_display_name(tab_type: str) -> str:
    return TAB_DISPLAY_NAMES.get(tab_type, tab_type)


def _last_heading(text: str) -> Optional[str]:
    headings = HEADING.findall(text)
    return headings[-1].strip() if headings else None


def _parse_diagrams(content: str) -> List[dict]:
    found = []
    last_end = 0
    for match in DIAGRAM_BLOCK.finditer(content):
        code = match.group(1).strip()
        type_match = DIAGRAM_TYPE.match(code)
        diagram_type = type_match.group(1) if type_match else "flowchart"

        heading = HEADING.search(content[last_end:match.start()])
        title = heading.group(1).strip() if heading else f"{diagram_type.capitalize()} Diagram"

        found.append({
            "widget_type": "diagram",
            "title": title,
            "content": {"diagramCode": code, "diagramType": diagram_type},
            "raw_content": match.group(0),
        })
        last_end = match.end()
    return found


def _parse_kpis(content: str) -> List[dict]:
    found = []
    for match in KPI.finditer(content):
        label = (match.group(1) or match.group(5) or "").strip()
        raw_value = match.group(2) or match.group(6)
        raw_target = match.group(3) or match.group(7)
        status = match.group(4) or match.group(8)
        if not label or raw_value is None:
            continue

        value = float(raw_value)
        target = float(raw_target) if raw_target else None
        if status:
            status = status.lower()
        else:
            status = "on-track" if target and value >= target else "at-risk"

        found.append({
            "widget_type": "kpi",
            "title": label,
            "content": {"value": value, "target": target, "unit": "number", "status": status},
            "raw_content": match.group(0),
        })
    return found


def _split_row(row: str) -> List[str]:
    return [cell.strip() for cell in row.split("|") if cell.strip()]


def _parse_tables(content: str) -> List[dict]:
    """Consecutive lines starting with '|' form one table; the first row is the header."""
    found = []
    lines = content.split("\n")
    i = 0
    while i < len(lines):
        if not lines[i].strip().startswith("|"):
            i += 1
            continue

        start = i
        while i < len(lines) and lines[i].strip().startswith("|"):
            i += 1
        block = lines[start:i]
        rows = [line.strip() for line in block if not TABLE_SEPARATOR.match(line.strip())]
        if len(rows) < 2:
            continue

        headers = _split_row(rows[0])
        data = []
        for row in rows[1:]:
            cells = _split_row(row)
            data.append({h: cells[idx] if idx < len(cells) else "" for idx, h in enumerate(headers)})

        found.append({
            "widget_type": "table",
            "title": _last_heading("\n".join(lines[:start])) or "Data Table",
            "content": {"headers": headers, "data": data},
            "raw_content": "\n".join(block),
        })
    return found


def _parse_milestones(content: str) -> List[dict]:
    milestones = [
        {"event": m.group(1).strip(), "date": m.group(2).strip()}
        for m in MILESTONE.finditer(content)
    ]
    if not milestones:
        return []
    return [{
        "widget_type": "timeline",
        "title": "Key Milestones",
        "content": {"milestones": milestones},
        "raw_content": "\n".join(f"{m['event']}: {m['date']}" for m in milestones),
    }]


def _parse_lists(content: str) -> List[dict]:
    found = []
    for match in HEADED_LIST.finditer(content):
        items = [LIST_MARKER.sub("", line).strip() for line in match.group(2).strip().split("\n")]
        items = [item for item in items if item]
        if len(items) > MIN_LIST_ITEMS:
            found.append({
                "widget_type": "list",
                "title": match.group(1).strip(),
                "content": {"items": items},
                "raw_content": match.group(0),
            })
    return found


def parse_tab_content(tab_type: str, content: str) -> List[ParsedWidget]:
    """
    Extract widgets from a tab's markdown, grouped by kind: diagrams,
    KPIs, tables, the milestone timeline, then lists.

    Args:
        tab_type: Tab the content belongs to; names the fallback text widget
        content: Markdown text

    Returns:
        Widgets numbered by ``order`` from 0. Never empty.
    """
    parsed = (
        _parse_diagrams(content)
        + _parse_kpis(content)
        + _parse_tables(content)
        + _parse_milestones(content)
        + _parse_lists(content)
    )
    if not parsed:
        return [ParsedWidget(
            widget_type="text",
            title=tab_display_name(tab_type),
            content={"markdown": content},
            raw_content=content,
            order=0,
        )]
    return [ParsedWidget(order=order, **fields) for order, fields in enumerate(parsed)]

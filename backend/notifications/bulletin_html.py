"""
HTML rendering of AFOS bulletins for email.

Keeps every original line on its own block with spacing preserved, adds a
thin separator before section headers (".KEY MESSAGES...", "...NEW
DISCUSSION") and "&&" lines, and turns the PRELIMINARY POINT TEMPS/POPS block
into a small table.
"""

import html
import re

_AMP_SEPARATOR = re.compile(r"^&{2,}$")
_PRELIM_HEADER = re.compile(r"^\s*\.PRELIMINARY POINT TEMPS/POPS", re.IGNORECASE)
_PRELIM_ROW = re.compile(
    r"^\s*([A-Z0-9][A-Z0-9 ./'()\-]*?)\s+(\d+)\s+(\d+)\s+(\d+)\s+(\d+)"
    r"\s*/\s*(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s*$",
    re.IGNORECASE,
)
_LEADING_SPACES = re.compile(r"^ +")
_SPACE_RUNS = re.compile(r" {2,}")

SEPARATOR_DIV = '<div style="margin:10px 0 6px 0;border-top:1px solid #2a3546;"></div>'
LINE_STYLE = "white-space:pre-wrap;word-break:normal;overflow-wrap:normal;"
HEADER_STYLE = "color:#cbd5e1;font-weight:600;"


def _escape(text: str) -> str:
    return html.escape(text, quote=False)


def is_amp_separator(line: str) -> bool:
    return bool(_AMP_SEPARATOR.match(line.strip()))


def is_section_header(line: str) -> bool:
    # Covers both ".HEADER" and "...HEADER"
    return line.strip().startswith(".")


def parse_prelim_row(row: str) -> tuple[str, ...] | None:
    """Split a temps/PoPs row into (city, t1..t4, p1..p4), or None."""
    match = _PRELIM_ROW.match(row)
    if not match:
        return None
    city, *numbers = match.groups()
    return (city.strip(), *numbers)


def _preserve_spacing(escaped: str) -> str:
    out = _LEADING_SPACES.sub(lambda m: "&nbsp;" * len(m.group(0)), escaped)

    def runs(m: re.Match[str]) -> str:
        pairs, rem = divmod(len(m.group(0)), 2)
        return "&nbsp; " * pairs + ("&nbsp;" if rem else "")

    return _SPACE_RUNS.sub(runs, out)


def _build_prelim_table(rows: list[tuple[str, ...]]) -> str:
    table_style = (
        "width:100%;max-width:100%;border:1px solid #2a3546;border-radius:6px;"
        "margin:14px 0 18px 0;border-collapse:separate;border-spacing:0;"
        "background:transparent;"
    )
    row_sep = "border-top:1px solid #263244;"
    name_td = "padding:8px 12px;text-align:left;white-space:nowrap;font-weight:600;"
    num_td = (
        "padding:8px 10px;text-align:right;white-space:nowrap;"
        "font-variant-numeric:tabular-nums;min-width:2ch;"
    )
    slash_td = "padding:8px 8px;color:#9ca3af;text-align:center;"
    th_base = (
        "padding:6px 10px;border-bottom:1px solid #2a3546;color:#cbd5e1;"
        "font-weight:600;white-space:nowrap;"
    )

    out = f'<table role="presentation" cellpadding="0" cellspacing="0" style="{table_style}">'
    out += (
        "<thead><tr>"
        f'<th style="{th_base} text-align:left;">City</th>'
        f'<th style="{th_base} text-align:center;" colspan="4">Temps</th>'
        f'<th style="{th_base} text-align:center;">/</th>'
        f'<th style="{th_base} text-align:center;" colspan="4">PoPs</th>'
        "</tr></thead>"
    )
    for idx, (city, *values) in enumerate(rows):
        tr_style = "" if idx == 0 else row_sep
        zebra = "background:rgba(255,255,255,0.02);" if idx % 2 == 1 else ""
        temps = "".join(f'<td style="{num_td}">{v}</td>' for v in values[:4])
        pops = "".join(f'<td style="{num_td}">{v}</td>' for v in values[4:])
        out += (
            f'<tr style="{tr_style}{zebra}">'
            f'<td style="{name_td}">{_escape(city)}</td>'
            f"{temps}"
            f'<td style="{slash_td}">/</td>'
            f"{pops}"
            "</tr>"
        )
    out += "</table>"
    return out


def render_bulletin_html(text: str, footer_html: str = "") -> str:
    """
    Render canonical bulletin text as a self-contained HTML email body.

    Args:
        text: Canonical bulletin text
        footer_html: Optional trusted HTML appended below the bulletin
            (used for the unsubscribe link)

    Returns:
        HTML document string
    """
    # Tabs become 8 spaces so alignment survives every mail client
    lines = text.replace("\t", " " * 8).split("\n")

    body = ""
    prev_was_separator = False
    i = 0
    while i < len(lines):
        line = lines[i]

        if i > 0 and (is_section_header(line) or is_amp_separator(line)) and not prev_was_separator:
            body += SEPARATOR_DIV
            prev_was_separator = True

        if is_amp_separator(line):
            i += 1
            continue

        if _PRELIM_HEADER.match(line):
            rows: list[tuple[str, ...]] = []
            j = i + 1
            while j < len(lines):
                candidate = lines[j]
                if (
                    not candidate.strip()
                    or is_section_header(candidate)
                    or is_amp_separator(candidate)
                ):
                    break
                parsed = parse_prelim_row(candidate)
                if not parsed:
                    break
                rows.append(parsed)
                j += 1

            if rows:
                header = _escape(line)
                body += f'<div style="{LINE_STYLE}{HEADER_STYLE}">{header}</div>'
                body += _build_prelim_table(rows)
                prev_was_separator = False
                i = j
                continue

        content = _preserve_spacing(_escape(line)) or "&nbsp;"
        extra = HEADER_STYLE if is_section_header(line) else ""
        body += f'<div style="{LINE_STYLE}{extra}">{content}</div>'
        prev_was_separator = False
        i += 1

    return (
        "<!doctype html>"
        '<html><head><meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1"></head>'
        '<body style="margin:0;">'
        '<table role="presentation" width="100%" cellpadding="0" cellspacing="0" '
        'style="background:#111111;color:#ffffff;">'
        '<tr><td align="center" style="padding:16px;">'
        '<table role="presentation" width="720" cellpadding="0" cellspacing="0" '
        'style="max-width:100%;"><tr><td>'
        "<div style=\"font-family:'Courier New',Consolas,Menlo,'Lucida Console',monospace;"
        "font-variant-ligatures:none;tab-size:8;letter-spacing:0;font-size:16px;"
        'line-height:1.5;text-align:left;">'
        f"{body}"
        "</div>"
        f"{footer_html}"
        "</td></tr></table>"
        "</td></tr>"
        "</table>"
        "</body></html>"
    )

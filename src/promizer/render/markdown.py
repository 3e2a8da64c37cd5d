from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable, Optional

from promizer.domain.models import RouteDescriptor, to_plain


def _cell(value: object) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def _pretty_schema(raw: str) -> str:
    try:
        return json.dumps(json.loads(raw))
    except ValueError:
        return raw


def render_descriptor(d: RouteDescriptor) -> str:
    a = d.annotation
    md: list[str] = []

    md.append(f"# {d.handler or 'Unbound route'}\n")
    route = f"{a.method} {a.path}" if a.path else a.method
    md.append(f"`{route}`" + (" **(deprecated)**" if a.deprecated is True else "") + "\n")
    if a.url:
        md.append(f"Base URL: {a.url}\n")

    md.append("## Description")
    md.append((a.description or "_No description._") + "\n")

    if a.parameters:
        md.append("## Parameters")
        md.append("| Name | In | Type | Required | Description |")
        md.append("| --- | --- | --- | --- | --- |")
        for p in a.parameters:
            required = "yes" if p.required is True else "no"
            md.append(
                f"| {_cell(p.name or '')} | {_cell(p.location or '')} | {_cell(p.type or '')} "
                f"| {required} | {_cell(p.description)} |"
            )
        md.append("")

    if a.responses:
        md.append("## Responses")
        md.append("| Code | Description | Schema |")
        md.append("| --- | --- | --- |")
        for r in a.responses:
            schema = f"`{_cell(_pretty_schema(r.schema_))}`" if r.schema_ else ""
            md.append(f"| {_cell(r.code or '')} | {_cell(r.description)} | {schema} |")
        md.append("")

    fields = a.body_fields()
    if fields:
        md.append("## Request body")
        md.append(f"Format: `{a.format}`\n")
        for b in fields:
            md.append(f"- `{b.name}`: {b.type or 'unknown'}")
        md.append("")
    elif a.body is not None:
        md.append("## Request body")
        md.append(f"Format: `{a.format}`\n")
        md.append("```json")
        md.append(json.dumps(to_plain(a.body), indent=2))
        md.append("```\n")

    meta = []
    if a.tags:
        meta.append(f"- Tags: {', '.join(a.tags)}")
    if a.consumes:
        meta.append(f"- Consumes: {', '.join(a.consumes)}")
    if a.produces:
        meta.append(f"- Produces: {', '.join(a.produces)}")
    if a.security:
        meta.append(f"- Security: {json.dumps(to_plain(a.security))}")
    if meta:
        md.append("## Details")
        md.extend(meta)
        md.append("")

    if d.file_path:
        md.append(f"Source: `{d.file_path}:{d.handler_line or d.start_line}`\n")

    return "\n".join(md)


def render_markdown(descriptors: Iterable[RouteDescriptor], generated_at: Optional[datetime] = None) -> str:
    """Markdown documentation with one section per descriptor."""
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    sections = []
    for d in descriptors:
        sections.append(f"{render_descriptor(d)}\n*Last updated: {stamp}*\n\n---\n")
    return "\n".join(sections)

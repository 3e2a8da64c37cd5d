from __future__ import annotations

import re
from typing import Any, Mapping

from promizer.domain.models import BodyField, ParameterSpec, ResponseSpec, RouteAnnotation
from promizer.extractors.promizer.scanner import DEFAULT_MARKER

_BARE_KEY = re.compile(r"^[A-Za-z_$][\w$\-.@]*$")


def _quote(s: str) -> str:
    s = s.replace("\\", "\\\\").replace("'", "\\'")
    s = s.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")
    return f"'{s}'"


def _key(k: str) -> str:
    return k if _BARE_KEY.match(k) else _quote(k)


def _value(v: Any) -> str:
    if isinstance(v, bool):
        return _quote("true" if v else "false")
    if isinstance(v, Mapping):
        return "{" + ",".join(f"{_key(str(k))}={_value(x)}" for k, x in v.items()) + "}"
    if isinstance(v, (list, tuple)):
        return "[" + ", ".join(_value(x) for x in v) + "]"
    if v is None:
        return _quote("")
    return _quote(str(v))


def _parameter(p: ParameterSpec) -> str:
    if p.name is None and p.location is None and p.type is None and set(p.extras) == {"value"}:
        return _value(p.extras["value"])
    fields: dict[str, Any] = {}
    if p.name is not None:
        fields["name"] = p.name
    if p.location is not None:
        fields["location"] = p.location
    fields["required"] = p.required
    if p.type is not None:
        fields["type"] = p.type
    if p.description:
        fields["description"] = p.description
    if p.default is not None:
        fields["default"] = p.default
    fields.update(p.extras)
    return _value(fields)


def _response(r: ResponseSpec) -> str:
    if r.code is None and not r.description and not r.schema_ and set(r.extras) == {"value"}:
        return _value(r.extras["value"])
    fields: dict[str, Any] = {}
    if r.code is not None:
        fields["code"] = r.code
    if r.description:
        fields["description"] = r.description
    if r.schema_:
        fields["schema"] = r.schema_
    fields.update(r.extras)
    return _value(fields)


def _body(body: Any) -> str:
    if isinstance(body, tuple) and all(isinstance(b, BodyField) for b in body):
        return "[" + ", ".join(_quote(f"{b.name}:{b.type}" if b.type else b.name) for b in body) + "]"
    return _value(body)


def format_annotation(a: RouteAnnotation, marker: str = DEFAULT_MARKER) -> str:
    """
    Render an annotation as a single-line tag comment.

    Scanning and building the result gives back an equal annotation.
    """
    parts: list[str] = []
    if a.path is not None:
        parts.append(f"path={_quote(a.path)}")
    if a.url is not None:
        parts.append(f"url={_quote(a.url)}")
    parts.append(f"type={_quote(a.method)}")
    parts.append(f"format={_quote(a.format)}")
    if a.description:
        parts.append(f"description={_quote(a.description)}")
    if a.parameters:
        parts.append("parameters=[" + ", ".join(_parameter(p) for p in a.parameters) + "]")
    if a.responses:
        parts.append("responses=[" + ", ".join(_response(r) for r in a.responses) + "]")
    if a.tags:
        parts.append(f"tags={_value(a.tags)}")
    if a.security:
        parts.append(f"security={_value(a.security)}")
    if a.consumes:
        parts.append(f"consumes={_value(a.consumes)}")
    if a.produces:
        parts.append(f"produces={_value(a.produces)}")
    parts.append(f"deprecated={_value(a.deprecated)}")
    if a.body is not None:
        parts.append(f"body={_body(a.body)}")
    for k, v in a.extras.items():
        parts.append(f"{_key(k)}={_value(v)}")
    return f"//{marker}(" + ", ".join(parts) + ")"

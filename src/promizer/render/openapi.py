from __future__ import annotations

import json
import re
from typing import Any, Iterable, Mapping, Optional

from promizer.domain.models import HTTP_METHODS, RouteDescriptor, to_plain
from promizer.utils.logging import get_logger

logger = get_logger(__name__)

_PARAM_ANGLE = re.compile(r"<([A-Za-z_][A-Za-z0-9_]*)>")
_PARAM_COLON = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")
_PARAM_BRACE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
_MULTI_SLASH = re.compile(r"/{2,}")

_DEFAULT_MEDIA = "application/json"
_PLACEHOLDER_SCHEME = {"type": "http", "scheme": "bearer"}


def normalize_path(path: str) -> str:
    p = (path or "").strip()
    if not p.startswith("/"):
        p = "/" + p

    # normalize common param styles into "{param}"
    p = _PARAM_ANGLE.sub(r"{\1}", p)     # <id> -> {id}
    p = _PARAM_COLON.sub(r"{\1}", p)     # :id  -> {id}

    p = _MULTI_SLASH.sub("/", p)

    if p != "/" and p.endswith("/"):
        p = p[:-1]
    return p


def _example(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _requirement(s: Any) -> dict[str, Any]:
    # `security=[auth]` names a scheme with no scopes
    if not isinstance(s, Mapping):
        return {str(s): []}
    out: dict[str, Any] = {}
    for name, scopes in s.items():
        scopes = to_plain(scopes)
        if isinstance(scopes, list):
            out[str(name)] = [str(x) for x in scopes]
        else:
            out[str(name)] = [str(scopes)] if scopes else []
    return out


def _operation(d: RouteDescriptor, path: str) -> dict[str, Any]:
    a = d.annotation
    op: dict[str, Any] = {}
    if d.handler:
        op["operationId"] = d.handler
    if a.description:
        op["summary"] = a.description
    if a.tags:
        op["tags"] = list(a.tags)

    params: list[dict[str, Any]] = []
    body_props: dict[str, Any] = {}
    body_required: list[str] = []
    declared: set[str] = set()

    for p in a.parameters:
        if not p.name:
            continue
        if p.location == "body":
            body_props[p.name] = {"type": p.type or "string"}
            if p.description:
                body_props[p.name]["description"] = p.description
            if p.required is True:
                body_required.append(p.name)
            continue
        declared.add(p.name)
        entry: dict[str, Any] = {
            "name": p.name,
            "in": p.location or "query",
            "required": p.required is True or p.location == "path",
            "schema": {"type": p.type or "string"},
        }
        if p.description:
            entry["description"] = p.description
        if p.default is not None:
            entry["schema"]["default"] = to_plain(p.default)
        params.append(entry)

    for name in _PARAM_BRACE.findall(path):
        if name not in declared:
            params.append({"name": name, "in": "path", "required": True, "schema": {"type": "string"}})

    for b in a.body_fields():
        body_props.setdefault(b.name, {"type": b.type or "string"})

    if params:
        op["parameters"] = params

    media = a.consumes[0] if a.consumes else _DEFAULT_MEDIA
    if body_props:
        schema: dict[str, Any] = {"type": "object", "properties": body_props}
        if body_required:
            schema["required"] = body_required
        content: dict[str, Any] = {"schema": schema}
        if a.body is not None and not a.body_fields():
            content["example"] = to_plain(a.body)
        op["requestBody"] = {"required": bool(body_required), "content": {media: content}}
    elif a.body is not None:
        op["requestBody"] = {"content": {media: {"example": to_plain(a.body)}}}

    out_media = a.produces[0] if a.produces else _DEFAULT_MEDIA
    responses: dict[str, Any] = {}
    for r in a.responses:
        if r.code is None:
            continue
        resp: dict[str, Any] = {"description": r.description or ""}
        if r.schema_:
            resp["content"] = {out_media: {"example": _example(r.schema_)}}
        responses[str(r.code)] = resp
    op["responses"] = responses or {"default": {"description": ""}}

    if a.security:
        op["security"] = [_requirement(s) for s in a.security]
    if a.deprecated is True:
        op["deprecated"] = True
    return op


def build_openapi(
    descriptors: Iterable[RouteDescriptor],
    title: str = "API",
    version: str = "1.0.0",
    description: Optional[str] = None,
) -> dict[str, Any]:
    """
    OpenAPI 3.0 document from descriptors that carry a path.

    Descriptors without a path or with an unknown method, and repeats of a
    (path, method) pair, are skipped with a warning.
    """
    paths: dict[str, dict[str, Any]] = {}
    servers: list[str] = []
    schemes: list[str] = []

    for d in descriptors:
        a = d.annotation
        if not a.path:
            logger.warning("skipping %s: no path", d.label)
            continue
        if a.method not in HTTP_METHODS:
            logger.warning("skipping %s: unknown method %r", d.label, a.method)
            continue
        path = normalize_path(a.path)
        method = a.method.lower()
        item = paths.setdefault(path, {})
        if method in item:
            logger.warning("skipping %s: %s %s already documented", d.label, a.method, path)
            continue
        item[method] = op = _operation(d, path)
        for req in op.get("security", []):
            schemes.extend(n for n in req if n not in schemes)
        if a.url and a.url not in servers:
            servers.append(a.url)

    info: dict[str, Any] = {"title": title, "version": version}
    if description:
        info["description"] = description

    doc: dict[str, Any] = {"openapi": "3.0.3", "info": info}
    if servers:
        doc["servers"] = [{"url": u} for u in servers]
    doc["paths"] = {p: paths[p] for p in sorted(paths)}
    if schemes:
        # tags only name schemes; declare each so the document stays valid
        doc["components"] = {"securitySchemes": {n: dict(_PLACEHOLDER_SCHEME) for n in sorted(schemes)}}
    return doc

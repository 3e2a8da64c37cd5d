from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from promizer.domain.models import (
    BodyField,
    Issue,
    ParameterSpec,
    ResponseSpec,
    RouteAnnotation,
    RouteDescriptor,
)
from promizer.errors import ParseError, ScanError
from promizer.extractors.promizer.args import parse_args
from promizer.extractors.promizer.scanner import DEFAULT_MARKER, RawTag, scan_annotations
from promizer.utils.logging import get_logger

logger = get_logger(__name__)

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}

_ANNOTATION_KEYS = {
    "path",
    "url",
    "type",
    "method",
    "format",
    "description",
    "parameters",
    "responses",
    "tags",
    "security",
    "consumes",
    "produces",
    "deprecated",
    "body",
}
_PARAM_KEYS = {"name", "location", "in", "required", "type", "description", "default"}
_RESPONSE_KEYS = {"code", "status", "description", "schema"}


@dataclass(frozen=True)
class BuildResult:
    descriptors: tuple[RouteDescriptor, ...] = ()
    issues: tuple[Issue, ...] = ()


def _as_bool(value: Any) -> bool | str:
    # unparseable values come back as strings for the validator to flag
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return str(value)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _parameter(entry: Any) -> ParameterSpec:
    if not isinstance(entry, Mapping):
        return ParameterSpec(extras={"value": entry})
    return ParameterSpec(
        name=_as_opt_str(entry.get("name")),
        location=_as_opt_str(entry.get("location", entry.get("in"))),
        required=_as_bool(entry.get("required", False)),
        type=_as_opt_str(entry.get("type")),
        description=_as_opt_str(entry.get("description")) or "",
        default=entry.get("default"),
        extras={k: v for k, v in entry.items() if k not in _PARAM_KEYS},
    )


def _response(entry: Any) -> ResponseSpec:
    if not isinstance(entry, Mapping):
        return ResponseSpec(extras={"value": entry})
    return ResponseSpec(
        code=_as_opt_str(entry.get("code", entry.get("status"))),
        description=_as_opt_str(entry.get("description")) or "",
        schema=_as_opt_str(entry.get("schema")) or "",
        extras={k: v for k, v in entry.items() if k not in _RESPONSE_KEYS},
    )


def _body(value: Any) -> Any:
    """
    `['id:number', 'task:string']` becomes BodyField entries; anything else is
    a structured example. A list holding a single object is unwrapped.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        out = []
        for entry in value:
            name, _, typ = entry.partition(":")
            out.append(BodyField(name=name.strip(), type=typ.strip()))
        return out
    if isinstance(value, list) and len(value) == 1 and isinstance(value[0], Mapping):
        return dict(value[0])
    return value


def _unique(values: list[Any]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        s = str(v)
        if s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


def build_annotation(args: Mapping[str, Any]) -> RouteAnnotation:
    """Normalize parsed tag arguments, filling defaults for missing keys."""
    method = args.get("type", args.get("method"))
    fmt = args.get("format")

    return RouteAnnotation(
        path=_as_opt_str(args.get("path")),
        url=_as_opt_str(args.get("url")),
        method=str(method).strip().upper() if method is not None else "GET",
        format=str(fmt).strip().lower() if fmt is not None else "json",
        description=_as_opt_str(args.get("description")) or "",
        parameters=[_parameter(p) for p in _as_list(args.get("parameters"))],
        responses=[_response(r) for r in _as_list(args.get("responses"))],
        tags=_unique(_as_list(args.get("tags"))),
        security=_as_list(args.get("security")),
        consumes=[str(v) for v in _as_list(args.get("consumes"))],
        produces=[str(v) for v in _as_list(args.get("produces"))],
        deprecated=_as_bool(args.get("deprecated", False)),
        body=_body(args.get("body")),
        extras={k: v for k, v in args.items() if k not in _ANNOTATION_KEYS},
    )


def build_descriptor(tag: RawTag, args: Mapping[str, Any], file_path: str = "") -> RouteDescriptor:
    return RouteDescriptor(
        annotation=build_annotation(args),
        handler=tag.handler_name,
        file_path=file_path,
        start_line=tag.start_line,
        end_line=tag.end_line,
        handler_line=tag.handler_line,
    )


def parse_tag(tag: RawTag) -> dict[str, Any]:
    """Parse a tag's text, raising ParseError (with its source line) on failure."""
    try:
        args = parse_args(tag.text)
        if not tag.closed:
            raise ParseError("tag is missing its closing ')'", len(tag.text))
    except ParseError as e:
        e.line = tag.start_line + tag.text[: e.offset].count("\n")
        raise
    return args


def build_descriptors(source: str, file_path: str = "", marker: str = DEFAULT_MARKER) -> BuildResult:
    """
    Scan, parse and build every tag in `source`.

    A broken tag is reported as an Issue and skipped; the rest of the file is
    still processed.
    """
    descriptors: list[RouteDescriptor] = []
    issues: list[Issue] = []

    for item in scan_annotations(source, marker=marker):
        if isinstance(item, ScanError):
            logger.warning("%s:%d: %s", file_path or "<source>", item.line, item.message)
            issues.append(Issue(kind="scan", message=item.message, file_path=file_path, line=item.line))
            continue

        try:
            args = parse_tag(item)
        except ParseError as e:
            logger.warning("%s:%s: %s", file_path or "<source>", e.line, e)
            issues.append(
                Issue(
                    kind="parse",
                    message=e.message,
                    file_path=file_path,
                    line=e.line,
                    handler=item.handler_name,
                    offset=e.offset,
                )
            )
            continue

        descriptors.append(build_descriptor(item, args, file_path=file_path))

    logger.debug("%s: %d descriptor(s), %d issue(s)", file_path or "<source>", len(descriptors), len(issues))
    return BuildResult(descriptors=tuple(descriptors), issues=tuple(issues))

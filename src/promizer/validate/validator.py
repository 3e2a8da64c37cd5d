from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from promizer.domain.models import (
    BODY_FORMATS,
    HTTP_METHODS,
    PARAM_LOCATIONS,
    SHORTHAND_TYPES,
    BodyField,
    Issue,
    RouteDescriptor,
)
from promizer.errors import ValidationError

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


def _issue(d: RouteDescriptor, field: str, message: str, severity: str = "error") -> Issue:
    return Issue(
        kind="validation",
        severity=severity,
        message=message,
        file_path=d.file_path,
        line=d.start_line,
        handler=d.handler,
        field=field,
    )


def validate_descriptor(d: RouteDescriptor) -> list[Issue]:
    """All problems with a single descriptor, in field order."""
    a = d.annotation
    out: list[Issue] = []

    if not d.handler:
        out.append(_issue(d, "handler", "no function declaration follows the tag"))

    if a.method not in HTTP_METHODS:
        out.append(_issue(d, "method", f"unknown HTTP method {a.method!r}"))

    if a.format not in BODY_FORMATS:
        out.append(_issue(d, "format", f"unknown format {a.format!r}"))

    seen_names: set[str] = set()
    for i, p in enumerate(a.parameters):
        f = f"parameters[{i}]"
        if not p.name:
            out.append(_issue(d, f"{f}.name", "parameter has no name"))
        elif p.name in seen_names:
            out.append(_issue(d, f"{f}.name", f"duplicate parameter {p.name!r}"))
        else:
            seen_names.add(p.name)

        if p.location not in PARAM_LOCATIONS:
            out.append(_issue(d, f"{f}.location", f"invalid parameter location {p.location!r}"))
        if not p.type:
            out.append(_issue(d, f"{f}.type", "parameter has no type"))
        if isinstance(p.required, str):
            out.append(_issue(d, f"{f}.required", f"required must be true or false, got {p.required!r}"))
        elif p.required and p.default is not None:
            out.append(_issue(d, f"{f}.default", "required parameter must not have a default"))

    for i, r in enumerate(a.responses):
        f = f"responses[{i}]"
        code = _status_code(r.code)
        if code is None:
            out.append(_issue(d, f"{f}.code", f"response code {r.code!r} is not an HTTP status"))
        if not r.description:
            out.append(_issue(d, f"{f}.description", "response has no description"))

    for i, b in enumerate(a.body_fields()):
        out.extend(_check_body_field(d, i, b))

    if isinstance(a.deprecated, str):
        out.append(_issue(d, "deprecated", f"deprecated must be true or false, got {a.deprecated!r}"))

    return out


def _status_code(code: Optional[str]) -> Optional[int]:
    try:
        value = int(str(code).strip())
    except ValueError:
        return None
    return value if 100 <= value <= 599 else None


def _check_body_field(d: RouteDescriptor, i: int, b: BodyField) -> list[Issue]:
    f = f"body[{i}]"
    out = []
    if not _IDENTIFIER.match(b.name):
        out.append(_issue(d, f, f"body entry {b.name!r} is not an identifier"))
    if b.type not in SHORTHAND_TYPES:
        out.append(_issue(d, f, f"body entry {b.name!r} has unknown type {b.type!r}"))
    return out


def validate(descriptors: Iterable[RouteDescriptor]) -> list[Issue]:
    """
    Validate descriptors and collect every issue; never raises.

    Several tags stacked on the same handler are all kept; each one after the
    first gets a warning.
    """
    out: list[Issue] = []
    bound: dict[tuple[str, str], int] = {}

    for d in descriptors:
        out.extend(validate_descriptor(d))

        if d.handler:
            key = (d.file_path, d.handler)
            if key in bound:
                out.append(
                    _issue(
                        d,
                        "handler",
                        f"{d.handler!r} already has a tag at line {bound[key]}",
                        severity="warning",
                    )
                )
            else:
                bound[key] = d.start_line

    return out


def ensure_valid(issues: Sequence[Issue]) -> None:
    errors = [i for i in issues if i.is_error]
    if errors:
        raise ValidationError(errors)

from __future__ import annotations

from types import MappingProxyType
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_serializer

HTTP_METHODS: frozenset[str] = frozenset(("GET", "POST", "PUT", "PATCH", "DELETE"))

BODY_FORMATS: frozenset[str] = frozenset(("json", "raw-json"))

PARAM_LOCATIONS: frozenset[str] = frozenset(("body", "query", "path", "header"))
SHORTHAND_TYPES: frozenset[str] = frozenset(("string", "number", "boolean", "object", "array"))

IssueKind = Literal["scan", "parse", "validation"]
Severity = Literal["error", "warning"]


def freeze(value: Any) -> Any:
    """Read-only copy of parsed tag data: mappings become proxies, lists tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def to_plain(value: Any) -> Any:
    """Inverse of `freeze`, ready for json.dumps."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Mapping):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


# arbitrary tag data, read-only once validated
Frozen = Annotated[Any, AfterValidator(freeze), PlainSerializer(to_plain)]


def _no_extras() -> Mapping[str, Any]:
    return MappingProxyType({})


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ParameterSpec(_Frozen):
    name: Optional[str] = None
    location: Optional[str] = None
    # str when the tag held something that is not a boolean
    required: Union[bool, str] = False
    type: Optional[str] = None
    description: str = ""
    default: Frozen = None
    extras: Frozen = Field(default_factory=_no_extras)


class ResponseSpec(_Frozen):
    code: Optional[str] = None
    description: str = ""
    schema_: str = Field("", alias="schema")
    extras: Frozen = Field(default_factory=_no_extras)


class BodyField(_Frozen):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    type: str = ""


class RouteAnnotation(_Frozen):
    path: Optional[str] = None
    url: Optional[str] = None
    method: str = "GET"
    format: str = "json"
    description: str = ""

    parameters: tuple[ParameterSpec, ...] = ()
    responses: tuple[ResponseSpec, ...] = ()
    tags: tuple[str, ...] = ()
    security: tuple[Frozen, ...] = ()
    consumes: tuple[str, ...] = ()
    produces: tuple[str, ...] = ()
    deprecated: Union[bool, str] = False
    body: Union[tuple[BodyField, ...], Frozen, None] = Field(None, union_mode="left_to_right")

    extras: Frozen = Field(default_factory=_no_extras)

    @field_serializer("body")
    def _plain_body(self, body: Any) -> Any:
        return to_plain(body)

    def body_fields(self) -> tuple[BodyField, ...]:
        if isinstance(self.body, tuple) and all(isinstance(b, BodyField) for b in self.body):
            return self.body
        return ()

    def to_output(self) -> dict[str, Any]:
        """JSON-ready mapping in the documented output shape."""
        data = self.model_dump(mode="json", by_alias=True, exclude={"extras"})
        for p in data["parameters"]:
            if not p["extras"]:
                del p["extras"]
        for r in data["responses"]:
            if not r["extras"]:
                del r["extras"]
        return data


class RouteDescriptor(_Frozen):
    annotation: RouteAnnotation
    handler: Optional[str] = None
    file_path: str = ""
    start_line: int = 1
    end_line: int = 1
    handler_line: Optional[int] = None

    @property
    def label(self) -> str:
        return self.handler or f"<unbound@{self.start_line}>"


class Issue(_Frozen):
    kind: IssueKind
    message: str
    severity: Severity = "error"
    file_path: str = ""
    line: Optional[int] = None
    handler: Optional[str] = None
    field: Optional[str] = None
    offset: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

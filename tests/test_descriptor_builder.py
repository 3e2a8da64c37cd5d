import pytest

from promizer.domain.models import BodyField
from promizer.extractors.promizer.builder import build_annotation, build_descriptors


def test_build_get_todo_item():
    src = """//promizer(type='GET', format='json', body=['id:number'])
function getTodoItem(req,res){ res.send({}); }
"""
    result = build_descriptors(src)
    assert result.issues == ()
    assert len(result.descriptors) == 1

    d = result.descriptors[0]
    assert d.handler == "getTodoItem"
    assert d.annotation.method == "GET"
    assert d.annotation.format == "json"
    assert d.annotation.body == (BodyField(name="id", type="number"),)
    assert d.annotation.to_output()["body"] == [{"name": "id", "type": "number"}]


def test_build_full_login_annotation(login_source):
    result = build_descriptors(login_source, file_path="server.js")
    assert result.issues == ()
    d = result.descriptors[0]
    a = d.annotation

    assert d.file_path == "server.js"
    assert d.handler == "authenticateUser"
    assert (d.start_line, d.end_line, d.handler_line) == (1, 24, 25)

    assert a.path == "/api/auth/login"
    assert a.url == "https://api.example.com"
    assert a.method == "POST"
    assert a.format == "json"
    assert a.description == "User authentication endpoint"
    assert [p.name for p in a.parameters] == ["username", "password"]
    assert all(p.required is True and p.location == "body" for p in a.parameters)
    assert [r.code for r in a.responses] == ["200", "401"]
    assert a.responses[0].schema_ == '{"token": "string"}'
    assert a.tags == ("auth", "user")
    assert a.security == ()
    assert a.consumes == ("application/json",)
    assert a.produces == ("application/json",)
    assert a.deprecated is False
    assert a.body == {"username": "string", "password": "string"}


def test_build_defaults():
    a = build_annotation({})
    assert a.method == "GET"
    assert a.format == "json"
    assert a.deprecated is False
    assert a.path is None
    assert a.parameters == ()
    assert a.body is None


def test_build_normalizes_case_and_single_values():
    a = build_annotation({"method": "post", "format": "Raw-JSON", "tags": "auth", "consumes": "text/plain"})
    assert a.method == "POST"
    assert a.format == "raw-json"
    assert a.tags == ("auth",)
    assert a.consumes == ("text/plain",)


def test_build_keeps_unparseable_booleans_and_unknown_keys():
    a = build_annotation(
        {
            "deprecated": "sometimes",
            "parameters": [{"name": "id", "required": "maybe", "x-example": "5"}, "oops"],
            "responses": ["200"],
            "x-owner": "team-a",
        }
    )
    assert a.deprecated == "sometimes"
    assert a.parameters[0].required == "maybe"
    assert a.parameters[0].extras == {"x-example": "5"}
    assert a.parameters[1].name is None
    assert a.parameters[1].extras == {"value": "oops"}
    assert a.responses[0].code is None
    assert a.extras == {"x-owner": "team-a"}


def test_build_dedupes_tags_preserving_order():
    a = build_annotation({"tags": ["b", "a", "b"]})
    assert a.tags == ("b", "a")


def test_build_parse_error_skips_only_that_tag():
    src = """//promizer(type='GET', parameters=[{name='x'
function getX(req, res) {}

//promizer(type='POST', format='raw-json', body=['task:string'])
function createTodoItem(req, res) {}
"""
    result = build_descriptors(src, file_path="todo.js")
    assert [d.handler for d in result.descriptors] == ["createTodoItem"]

    assert len(result.issues) == 1
    issue = result.issues[0]
    assert issue.kind == "parse"
    assert issue.line == 1
    assert issue.handler == "getX"
    assert issue.file_path == "todo.js"
    assert issue.offset == len("type='GET', parameters=[")


def test_build_missing_close_paren_is_a_parse_error():
    src = """//promizer(type='GET'
function getX(req, res) {}
"""
    result = build_descriptors(src)
    assert result.descriptors == ()
    assert [i.kind for i in result.issues] == ["parse"]
    assert "closing ')'" in result.issues[0].message


def test_build_scan_error_is_reported():
    src = """//promizer type='GET'
function a(req, res) {}
"""
    result = build_descriptors(src)
    assert result.descriptors == ()
    assert [(i.kind, i.line) for i in result.issues] == [("scan", 1)]


def test_build_is_idempotent(login_source):
    assert build_descriptors(login_source) == build_descriptors(login_source)


def test_descriptors_are_read_only(login_source):
    result = build_descriptors(login_source)
    d = result.descriptors[0]
    a = d.annotation

    with pytest.raises(AttributeError):
        a.tags.append("mutated")
    with pytest.raises(AttributeError):
        result.descriptors.append(d)
    with pytest.raises(TypeError):
        a.body["username"] = "number"
    with pytest.raises(TypeError):
        a.parameters[0].extras["x"] = 1
    with pytest.raises(ValueError):
        a.method = "PUT"

    assert a.tags == ("auth", "user")
    # still plain JSON on the way out
    assert a.to_output()["body"] == {"username": "string", "password": "string"}
    assert a.to_output()["tags"] == ["auth", "user"]

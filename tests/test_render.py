import json
from datetime import datetime

from promizer.extractors.promizer.builder import build_descriptors
from promizer.render.markdown import render_markdown
from promizer.render.openapi import build_openapi, normalize_path

TODO = """//promizer(path='/todos/:id', type='GET', format='json', body=['id:number'])
function getTodoItem(req, res) {}

//promizer(type='POST', format='raw-json', body=['task:string'])
function createTodoItem(req, res) {}
"""


def test_normalize_path_styles():
    assert normalize_path("todos/:id/") == "/todos/{id}"
    assert normalize_path("/users/<user_id>") == "/users/{user_id}"
    assert normalize_path("//a//b") == "/a/b"
    assert normalize_path("/") == "/"


def test_markdown_contains_sections_and_timestamp(login_source):
    descriptors = build_descriptors(login_source, file_path="server.js").descriptors
    md = render_markdown(descriptors, generated_at=datetime(2024, 1, 2, 3, 4, 5))

    assert md.startswith("# authenticateUser\n")
    assert "`POST /api/auth/login`" in md
    assert "## Description\nUser authentication endpoint" in md
    assert "| username | body | string | yes | User login name |" in md
    assert '| 200 | Login successful | `{"token": "string"}` |' in md
    assert "- Tags: auth, user" in md
    assert "Source: `server.js:25`" in md
    assert "*Last updated: 2024-01-02 03:04:05*" in md
    assert md.rstrip().endswith("---")


def test_markdown_shorthand_body():
    descriptors = build_descriptors(TODO).descriptors
    md = render_markdown(descriptors, generated_at=datetime(2024, 1, 1))
    assert "- `id`: number" in md
    assert "Format: `raw-json`" in md
    assert md.count("*Last updated:") == 2


def test_openapi_document(login_source):
    descriptors = build_descriptors(login_source).descriptors + build_descriptors(TODO).descriptors
    doc = build_openapi(descriptors, title="Todo API")

    assert doc["openapi"] == "3.0.3"
    assert doc["info"] == {"title": "Todo API", "version": "1.0.0"}
    assert doc["servers"] == [{"url": "https://api.example.com"}]
    # createTodoItem has no path
    assert list(doc["paths"]) == ["/api/auth/login", "/todos/{id}"]

    login = doc["paths"]["/api/auth/login"]["post"]
    assert login["operationId"] == "authenticateUser"
    assert login["tags"] == ["auth", "user"]
    body = login["requestBody"]["content"]["application/json"]
    assert body["schema"]["required"] == ["username", "password"]
    assert set(body["schema"]["properties"]) == {"username", "password"}
    assert body["example"] == {"username": "string", "password": "string"}
    assert login["responses"]["200"]["content"]["application/json"]["example"] == {"token": "string"}
    assert login["responses"]["401"]["description"] == "Invalid credentials"

    todo = doc["paths"]["/todos/{id}"]["get"]
    assert todo["parameters"] == [{"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}]
    assert todo["requestBody"]["content"]["application/json"]["schema"]["properties"] == {"id": {"type": "number"}}
    assert todo["responses"] == {"default": {"description": ""}}


def test_openapi_skips_unknown_methods_and_duplicates():
    src = """//promizer(path='/a', type='GET')
function a(req, res) {}
//promizer(path='/a', type='GET', description='again')
function b(req, res) {}
//promizer(path='/c', type='FETCH')
function c(req, res) {}
"""
    doc = build_openapi(build_descriptors(src).descriptors)
    assert list(doc["paths"]) == ["/a"]
    assert doc["paths"]["/a"]["get"]["operationId"] == "a"
    assert "servers" not in doc


def test_openapi_declares_security_schemes():
    src = """//promizer(path='/me', type='GET', security=[auth, {oauth=[read, write]}], body=[{a=1}, {b=2}])
function me(req, res) {}
"""
    doc = build_openapi(build_descriptors(src).descriptors)
    op = doc["paths"]["/me"]["get"]

    assert op["security"] == [{"auth": []}, {"oauth": ["read", "write"]}]
    assert sorted(doc["components"]["securitySchemes"]) == ["auth", "oauth"]
    assert op["requestBody"]["content"]["application/json"]["example"] == [{"a": "1"}, {"b": "2"}]
    json.dumps(doc)

from promizer.errors import ScanError
from promizer.extractors.promizer.scanner import RawTag, declared_name, scan_annotations


def _tags(source, **kw):
    return [t for t in scan_annotations(source, **kw) if isinstance(t, RawTag)]


def test_scan_single_line_tag_binds_following_function():
    src = """
// Endpoint for fetching a to-do item by ID
//promizer(type='GET', format='json', body=['id:number'])
function getTodoItem(req, res) {
    res.send({});
}
"""
    tags = _tags(src)
    assert len(tags) == 1
    t = tags[0]
    assert t.text == "type='GET', format='json', body=['id:number']"
    assert t.start_line == 3 and t.end_line == 3
    assert t.handler_name == "getTodoItem"
    assert t.handler_line == 4
    assert t.closed


def test_scan_multiline_tag_without_comment_prefix():
    src = """//promizer(
path='/api/auth/login',
    type='POST',
    responses=[
        {code='200',description='ok (logged in)',schema='{"token": "string"}'}
    ]
)

function authenticateUser(req, res) {}
"""
    tags = _tags(src)
    assert len(tags) == 1
    t = tags[0]
    assert t.start_line == 1
    assert t.end_line == 7
    assert "path='/api/auth/login'" in t.text
    assert "ok (logged in)" in t.text
    assert not t.text.rstrip().endswith(")")
    assert t.handler_name == "authenticateUser"
    assert t.handler_line == 9


def test_scan_multiline_tag_with_comment_prefix_is_stripped():
    src = """//promizer(type='GET',
//    path='/x',
//    tags=[a])
const listThings = async (req, res) => {};
"""
    tags = _tags(src)
    assert len(tags) == 1
    assert "//" not in tags[0].text
    assert "path='/x'" in tags[0].text
    assert tags[0].handler_name == "listThings"


def test_scan_stacked_tags_bind_to_same_handler():
    src = """//promizer(type='POST', path='/a')
// a regular comment in between
//promizer(type='POST', path='/a', tags=[auth])

/* block
   comment */
export async function login(req, res) {}
"""
    tags = _tags(src)
    assert [t.handler_name for t in tags] == ["login", "login"]
    assert [t.start_line for t in tags] == [1, 3]
    assert tags[0].handler_line == 7


def test_scan_tag_followed_by_code_has_no_handler():
    src = """//promizer(type='GET')
module.exports = { a };
"""
    tags = _tags(src)
    assert len(tags) == 1
    assert tags[0].handler_name is None
    assert tags[0].handler_line is None


def test_scan_unterminated_tag_stops_at_declaration_and_continues():
    src = """//promizer(type='GET', parameters=[{name='x'
function broken(req, res) {}

//promizer(type='DELETE', format='json', body=['id:number'])
function deleteTodoItem(req, res) {}
"""
    tags = _tags(src)
    assert len(tags) == 2
    assert not tags[0].closed
    assert tags[0].end_line == 1
    assert tags[0].handler_name == "broken"
    assert tags[1].closed
    assert tags[1].handler_name == "deleteTodoItem"


def test_scan_marker_without_arguments_is_a_scan_error():
    src = """//promizer type='GET'
function a(req, res) {}
//promizer(type='GET')
function b(req, res) {}
"""
    items = list(scan_annotations(src))
    assert isinstance(items[0], ScanError)
    assert items[0].line == 1
    assert isinstance(items[1], RawTag)
    assert items[1].handler_name == "b"


def test_scan_custom_marker_and_other_markers_ignored():
    src = """//apidoc(type='GET')
function a(req, res) {}
//promizerX(type='GET')
function b(req, res) {}
"""
    assert [t.handler_name for t in _tags(src, marker="apidoc")] == ["a"]
    assert _tags(src) == []


def test_scan_is_restartable():
    src = "//promizer(type='GET')\nfunction a(req, res) {}\n"
    assert list(scan_annotations(src)) == list(scan_annotations(src))


def test_declared_name_forms():
    assert declared_name("function getTodoItem(req, res) {") == "getTodoItem"
    assert declared_name("export default async function handler(req, res) {") == "handler"
    assert declared_name("const createTodo = (req, res) => {") == "createTodo"
    assert declared_name("let h = async function (req, res) {") == "h"
    assert declared_name("exports.remove = function (req, res) {") == "remove"
    assert declared_name("  async show(req, res) {") == "show"
    assert declared_name("if (x) {") is None
    assert declared_name("res.send({ ok: true });") is None


def test_scan_trailing_tag_and_prose_mentions():
    src = """// promizer tags below document the todo routes
const x = 1; //promizer(type='GET', path='/x')
function getX(req, res) {}
// see http://promizer.dev for the tag syntax
//promizer
function bare(req, res) {}
"""
    items = list(scan_annotations(src))
    assert len(items) == 2

    tag = items[0]
    assert isinstance(tag, RawTag)
    assert tag.start_line == 2
    assert "path='/x'" in tag.text
    assert tag.handler_name == "getX"

    assert isinstance(items[1], ScanError)
    assert items[1].line == 5

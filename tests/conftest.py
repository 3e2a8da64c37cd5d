from pathlib import Path

import pytest

DATA = Path(__file__).resolve().parent / "data"


@pytest.fixture
def login_source() -> str:
    return (DATA / "login.js").read_text(encoding="utf-8")


@pytest.fixture
def server_js() -> Path:
    return DATA / "server.js"

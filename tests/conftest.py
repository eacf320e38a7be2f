import uuid

import pytest

from tools.logger import build_logger, ring_buffer

LINEAR_CSV = "a,b\n1,2\n2,4\n3,6\n4,8\n5,10\n6,12\n7,14\n8,16\n9,18\n10,20\n11,22\n"


@pytest.fixture(autouse=True)
def no_openai_key(monkeypatch):
    # narration must use the deterministic fallback in tests
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def linear_csv():
    return LINEAR_CSV


@pytest.fixture
def ring_logger():
    logger = build_logger(f"tests.{uuid.uuid4().hex}", capacity=200)
    logger.propagate = False
    return logger, ring_buffer(logger)


@pytest.fixture
def make_csv():
    def _make(columns, rows):
        lines = [",".join(columns)]
        lines += [",".join(str(v) for v in r) for r in rows]
        return "\n".join(lines) + "\n"
    return _make

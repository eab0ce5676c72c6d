import json
import os
import sys

import pytest

# Ensure project root is on sys.path so deploydiag imports work without install
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from deploydiag.diagnostics.runner import Check  # noqa: E402
from deploydiag.network.http import HTTPEndpointResult, HTTPTester, NO_BODY  # noqa: E402


class RecordingProbe:
    """Probe returning a fixed result (or raising) and counting its calls."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


@pytest.fixture
def make_check():
    """Factory fixture: make_check(name, outcome) -> (Check, RecordingProbe)."""
    def _make(name, outcome):
        probe = RecordingProbe(outcome)
        return Check(name=name, probe=probe), probe
    return _make


class StubHTTPTester(HTTPTester):
    """HTTPTester answering from a URL -> HTTPEndpointResult table."""

    def __init__(self, responses=None):
        super().__init__(timeout=1.0)
        self.responses = responses or {}
        self.requests = []

    def request(self, url, method="GET", headers=None, json_body=NO_BODY,
                allow_redirects=True, verify=True, timeout=None):
        self.requests.append({
            'url': url,
            'method': method,
            'headers': headers,
            'json_body': json_body,
            'allow_redirects': allow_redirects,
            'verify': verify,
        })
        answer = self.responses.get((url, verify), self.responses.get(url))
        if answer is None:
            return HTTPEndpointResult(url=url, method=method, is_accessible=False,
                                      error="Connection error: refused")
        return answer


def http_response(url, status_code, text="", headers=None, method="GET"):
    headers = headers or {}
    return HTTPEndpointResult(
        url=url,
        method=method,
        is_accessible=True,
        status_code=status_code,
        response_time_ms=12.0,
        headers=headers,
        content_type=headers.get('Content-Type'),
        location=headers.get('Location'),
        text=text,
    )


@pytest.fixture
def stub_http():
    return StubHTTPTester()


@pytest.fixture
def package_dir(tmp_path):
    """A minimal deployment package on disk."""
    (tmp_path / "package.json").write_text(json.dumps({
        "dependencies": {"express": "^4.18.2", "mongoose": "^7.0.0"},
        "devDependencies": {"typescript": "^5.0.0"},
    }))
    (tmp_path / "dist").mkdir()
    (tmp_path / "dist" / "index.js").write_text("console.log('ok');\n")
    return tmp_path


@pytest.fixture
def config_file(tmp_path):
    """Write a config JSON file and return a function producing its path."""
    def _write(**values):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(values))
        return path
    return _write


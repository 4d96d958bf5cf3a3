from starlette.requests import Request

from mockprep.web.core.security import needs_origin_check, same_origin


def _request(method="POST", headers=None, user=None):
    raw = [(b"host", b"testserver")]
    raw += [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    scope = {
        "type": "http",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "path": "/api/interview/quiz/answer",
        "root_path": "",
        "query_string": b"",
        "headers": raw,
        "session": {"user": user} if user else {},
    }
    return Request(scope)


def test_anonymous_writes_skip_the_origin_check():
    assert not needs_origin_check(_request(headers={"origin": "http://evil.example"}))


def test_signed_in_reads_skip_the_origin_check():
    assert not needs_origin_check(_request(method="GET", user={"id": "42"}))


def test_signed_in_writes_are_checked():
    assert needs_origin_check(_request(user={"id": "42"}))


def test_same_origin_by_origin_header():
    assert same_origin(_request(headers={"origin": "http://testserver"}))
    assert not same_origin(_request(headers={"origin": "http://evil.example"}))


def test_same_origin_falls_back_to_referer():
    assert same_origin(_request(headers={"referer": "http://testserver/dashboard"}))
    assert not same_origin(_request(headers={"referer": "https://evil.example/x"}))


def test_missing_headers_are_cross_site():
    assert not same_origin(_request())

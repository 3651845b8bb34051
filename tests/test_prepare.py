import pytest

from httpcall.errors import UsageError
from httpcall.prepare import is_idempotent_method, is_mutating_method, prepare_call


def test_defaults_to_get():
    request = prepare_call(" /data/api/v1/gateway-info ")
    assert request.method == "GET"
    assert request.path == "/data/api/v1/gateway-info"
    assert request.body is None
    assert request.content_type == ""


def test_body_defaults_to_json_content_type():
    request = prepare_call("/x", "post", body=b"{}", yes=True)
    assert request.method == "POST"
    assert request.content_type == "application/json"


def test_dry_run_adds_query():
    request = prepare_call("/x", "POST", query=["a=1"], yes=True, dry_run=True)
    assert request.query == ("a=1", "dryRun=true")


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"path": ""}, "path"),
        ({"path": "/x", "timeout": 0}, "timeout"),
        ({"path": "/x", "retry": -1}, "retry"),
        ({"path": "/x", "retry": 1, "retry_backoff": 0}, "backoff"),
        ({"path": "/x", "method": "DELETE"}, "confirmation"),
        ({"path": "/x", "method": "POST", "yes": True, "retry": 1, "retry_backoff": 0.5}, "idempotent"),
    ],
)
def test_rejects_invalid_options(kwargs, message):
    with pytest.raises(UsageError) as excinfo:
        prepare_call(**kwargs)
    assert message in str(excinfo.value)


def test_retry_allowed_for_idempotent_put():
    request = prepare_call("/x", "PUT", yes=True, retry=2, retry_backoff=0.5)
    assert request.retry == 2


def test_method_sets():
    assert is_mutating_method("patch")
    assert not is_mutating_method("GET")
    assert is_idempotent_method(" options ")
    assert not is_idempotent_method("POST")

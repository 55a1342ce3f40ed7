import httpx
import pytest

from pos_backend.utils.errors import error_body
from pos_backend.utils.http_retry import async_retry, error_detail, is_retryable, upstream_code, upstream_message


def _status_error(status, **kwargs):
    request = httpx.Request("GET", "https://shop.test/x")
    return httpx.HTTPStatusError(str(status), request=request, response=httpx.Response(status, request=request, **kwargs))


def test_retryable_classification():
    assert is_retryable(_status_error(500)) is True
    assert is_retryable(_status_error(503)) is True
    assert is_retryable(_status_error(404)) is False
    assert is_retryable(_status_error(429)) is False
    assert is_retryable(httpx.ReadTimeout("slow")) is True
    assert is_retryable(ValueError("x")) is False


def test_error_detail_prefers_upstream_body():
    exc = _status_error(400, json={"code": "bad_coupon", "message": "Coupon invalid"})

    assert error_detail(exc) == {"code": "bad_coupon", "message": "Coupon invalid"}
    assert upstream_message(exc, "fallback") == "Coupon invalid"
    assert upstream_code(exc) == "bad_coupon"
    assert error_detail(_status_error(500, text="oops")) == "oops"
    assert upstream_message(_status_error(500, text="oops"), "fallback") == "fallback"


@pytest.mark.asyncio
async def test_async_retry_backs_off_exponentially(no_backoff):
    attempts = []

    @async_retry(max_attempts=4, base_delay=1.0, max_delay=3.0)
    async def flaky():
        attempts.append(1)
        raise httpx.ConnectError("down")

    with pytest.raises(httpx.ConnectError):
        await flaky()

    assert len(attempts) == 4
    assert [c.args[0] for c in no_backoff.await_args_list] == [1.0, 2.0, 3.0]


def test_error_body_hides_detail_in_production(mocker):
    exc = ValueError("secret detail")
    assert error_body("Failed", exc)["error"] == "secret detail"

    mocker.patch("pos_backend.utils.errors.settings.ENVIRONMENT", "production")
    body = error_body("Failed", exc, order_id=5)
    assert body == {"success": False, "message": "Failed", "order_id": 5}

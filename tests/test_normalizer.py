import httpx
import pytest

from portal_client.errors import (
    ErrorKind,
    NotFoundError,
    PermissionDeniedError,
    RequestTimeoutError,
    ServerError,
    SessionExpiredError,
    ValidationError,
)
from portal_client.normalizer import ResponseNormalizer, extract_message, parse_body


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(
        status,
        request=httpx.Request("GET", "https://portal.example.gov.vn/api/citizens"),
        **kwargs,
    )


@pytest.mark.parametrize(
    ("status", "error_class"),
    [
        (401, SessionExpiredError),
        (400, ValidationError),
        (422, ValidationError),
        (403, PermissionDeniedError),
        (404, NotFoundError),
        (500, ServerError),
        (503, ServerError),
        (408, RequestTimeoutError),
        (409, ValidationError),
    ],
)
def test_status_classification(status: int, error_class: type) -> None:
    with pytest.raises(error_class) as excinfo:
        ResponseNormalizer().normalize(_response(status, json={"message": "x"}))

    assert excinfo.value.http_status == status


def test_success_envelope_is_unwrapped() -> None:
    response = _response(200, json={"status": "success", "data": {"id": 1}, "message": "OK"})

    assert ResponseNormalizer().normalize(response) == {"id": 1}


def test_envelope_without_data_is_returned_as_is() -> None:
    body = {"status": "success", "message": "Logged out successfully."}

    assert ResponseNormalizer().normalize(_response(200, json=body)) == body


def test_text_body_is_returned_as_text() -> None:
    assert ResponseNormalizer().normalize(_response(200, text="pong")) == "pong"


def test_empty_body_is_none() -> None:
    assert ResponseNormalizer().normalize(_response(204)) is None


def test_unparseable_json_falls_back_to_message() -> None:
    response = _response(
        500,
        headers={"content-type": "application/json"},
        content=b"{not json",
    )

    with pytest.raises(ServerError) as excinfo:
        ResponseNormalizer().normalize(response)

    assert excinfo.value.message == "Failed to parse response"
    assert excinfo.value.raw_body == {"message": "Failed to parse response"}


def test_parse_body_reads_vendor_json_types() -> None:
    response = _response(
        200,
        headers={"content-type": "application/problem+json"},
        content=b'{"title": "x"}',
    )

    assert parse_body(response) == {"title": "x"}


def test_message_takes_precedence_over_errors() -> None:
    body = {"message": "Validation failed", "errors": [{"message": "Tên đã tồn tại"}]}

    assert extract_message(body) == "Validation failed"


def test_error_field_and_string_errors() -> None:
    assert extract_message({"error": "Refresh token is required."}) == "Refresh token is required."
    assert extract_message({"message": "  ", "errors": ["", "Thiếu mã khu vực"]}) == (
        "Thiếu mã khu vực"
    )
    assert extract_message({"errors": [{"msg": "Invalid value"}]}) == "Invalid value"
    assert extract_message({"status": "error"}) is None


def test_known_english_message_is_translated() -> None:
    with pytest.raises(PermissionDeniedError) as excinfo:
        ResponseNormalizer().normalize(_response(403, json={"error": "Invalid refresh token."}))

    assert excinfo.value.message == "Phiên đăng nhập đã hết hạn. Vui lòng đăng nhập lại."


def test_unmapped_message_passes_through() -> None:
    with pytest.raises(ValidationError) as excinfo:
        ResponseNormalizer().normalize(_response(400, json={"message": "Area code 99 is unknown"}))

    assert excinfo.value.message == "Area code 99 is unknown"


def test_missing_message_uses_default_for_kind() -> None:
    with pytest.raises(ServerError) as excinfo:
        ResponseNormalizer().normalize(_response(502, content=b""))

    assert excinfo.value.message == "Hệ thống đang gặp sự cố. Vui lòng thử lại sau."
    assert excinfo.value.kind is ErrorKind.SERVER


def test_plain_text_error_body_becomes_message() -> None:
    with pytest.raises(ServerError) as excinfo:
        ResponseNormalizer().normalize(_response(500, text="upstream unavailable"))

    assert excinfo.value.message == "upstream unavailable"
    assert excinfo.value.raw_body == "upstream unavailable"


def test_classify_returns_error_without_raising() -> None:
    result = ResponseNormalizer().classify(_response(401, json={"message": "Token expired"}))

    assert isinstance(result, SessionExpiredError)
    assert result.kind is ErrorKind.SESSION_EXPIRED

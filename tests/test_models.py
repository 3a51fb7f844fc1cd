import pytest

from portal_auth.models import Session


def test_bare_refresh_payload() -> None:
    session = Session.from_payload({"accessToken": "a2"}, previous_refresh_token="r1")

    assert session == Session("a2", "r1")


def test_rotated_refresh_token_wins() -> None:
    session = Session.from_payload(
        {"accessToken": "a2", "refreshToken": "r2"}, previous_refresh_token="r1"
    )

    assert session.refresh_token == "r2"


def test_nested_tokens_in_success_envelope() -> None:
    payload = {
        "status": "success",
        "data": {"user": {"id": 1}, "tokens": {"accessToken": "a", "refreshToken": "r"}},
    }

    assert Session.from_payload(payload) == Session("a", "r")


def test_top_level_tokens_object() -> None:
    payload = {"tokens": {"accessToken": "a", "refreshToken": "r"}}

    assert Session.from_payload(payload) == Session("a", "r")


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"refreshToken": "r"},
        {"accessToken": ""},
        {"accessToken": "a"},
        {"status": "success", "data": None},
    ],
)
def test_invalid_payloads_raise(payload) -> None:
    with pytest.raises(RuntimeError):
        Session.from_payload(payload)


def test_repr_hides_tokens() -> None:
    assert "secret" not in repr(Session("secret-access", "secret-refresh"))

from http import HTTPStatus

import pytest

from guildchat.errors import ApiError


def test_to_dict_holds_status_and_description():
    error = ApiError(HTTPStatus.FORBIDDEN, "No credentials were provided")
    assert error.to_dict() == {
        "status": int(HTTPStatus.FORBIDDEN),
        "description": "No credentials were provided",
    }


def test_not_found_uses_reason_phrase():
    error = ApiError.not_found()
    assert error.status == HTTPStatus.NOT_FOUND
    assert error.description == HTTPStatus.NOT_FOUND.phrase


def test_internal_describes_error():
    error = ApiError.internal(RuntimeError("pool exhausted"))
    assert error.status == HTTPStatus.INTERNAL_SERVER_ERROR
    assert error.description == "pool exhausted"


def test_plain_int_status_is_accepted():
    error = ApiError(int(HTTPStatus.CONFLICT), "taken")
    assert error.status is HTTPStatus.CONFLICT


def test_unknown_status_rejected():
    with pytest.raises(ValueError):
        ApiError(999, "nope")


def test_is_an_exception_carrying_its_payload():
    error = ApiError(HTTPStatus.BAD_REQUEST, "bad id")
    assert isinstance(error, Exception)
    assert error.to_dict() == {"status": 400, "description": "bad id"}
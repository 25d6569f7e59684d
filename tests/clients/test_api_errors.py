import pytest

from kontroller._cogs.clients.errors import APIError, APIGoneError, make_api_error


def test_error_with_no_payload():
    error = APIError(None, status=500)
    assert error.status == 500
    assert error.code is None
    assert error.reason is None
    assert error.message is None
    assert error.details is None


def test_error_with_payload():
    error = APIError({
        'code': 403,
        'reason': 'Forbidden',
        'message': 'pods is forbidden',
        'details': {'kind': 'pods'},
    })
    assert error.status == 403
    assert error.code == 403
    assert error.reason == 'Forbidden'
    assert error.message == 'pods is forbidden'
    assert error.details == {'kind': 'pods'}


def test_explicit_status_overrides_the_code():
    error = APIError({'code': 403}, status=401)
    assert error.status == 401
    assert error.code == 403


def test_gone_errors_are_recognized():
    error = make_api_error({'code': 410, 'reason': 'Expired', 'message': 'too old resource version'})
    assert isinstance(error, APIGoneError)
    assert error.code == 410
    assert error.reason == 'Expired'


@pytest.mark.parametrize('code', [None, 400, 403, 500])
def test_other_errors_are_generic(code):
    error = make_api_error({'code': code} if code is not None else {})
    assert type(error) is APIError
    assert error.code == code

import pytest
from rest_framework.exceptions import NotFound

from clinic.exceptions import api_exception_handler

pytestmark = pytest.mark.django_db


def test_handler_shapes_drf_errors():
    resp = api_exception_handler(NotFound('Nope'), {'view': None})
    assert resp.status_code == 404
    assert resp.data == {'message': 'Nope'}


def test_handler_turns_unexpected_errors_into_500(settings):
    settings.ENV = 'dev'
    try:
        raise RuntimeError('kaboom')
    except RuntimeError as e:
        resp = api_exception_handler(e, {'view': None})
    assert resp.status_code == 500
    assert resp.data['message'] == 'Internal server error'
    assert resp.data['error'] == 'kaboom'
    assert 'RuntimeError' in resp.data['stack']

    settings.ENV = 'prod'
    try:
        raise RuntimeError('kaboom')
    except RuntimeError as e:
        resp = api_exception_handler(e, {'view': None})
    assert 'stack' not in resp.data


def test_healthz(client):
    r = client.get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'message': 'ok', 'db': True, 'cache': True}

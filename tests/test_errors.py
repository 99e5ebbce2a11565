import logging

from errors import ConfigurationMissing, NotFound, UpstreamRequestFailed, ValidationError, handle_action


def test_handle_action_success():
    res = handle_action(lambda: {'ok': True})
    assert res == {'status': 200, 'message': 'Operation successful', 'data': {'ok': True}}


def test_handle_action_known_error_is_400():
    def boom():
        raise ValidationError('The start date is required.')

    res = handle_action(boom)
    assert res['status'] == 400
    assert res['message'] == 'The start date is required.'
    assert res['data'] is None


def test_handle_action_unknown_error_is_500(caplog):
    def boom():
        raise RuntimeError('kaboom')

    with caplog.at_level(logging.ERROR, logger='errors'):
        res = handle_action(boom)
    assert res == {'status': 500, 'message': 'Unknown error occurred!!!', 'data': None}
    assert 'kaboom' in caplog.text


def test_error_messages_carry_context():
    err = UpstreamRequestFailed('list_sprints(12)', 'Board does not support sprints', 400)
    assert str(err) == 'list_sprints(12) failed (HTTP 400): Board does not support sprints'
    assert err.status == 400
    assert str(NotFound('project', 'Apollo')) == 'Project with name Apollo not found.'
    assert ConfigurationMissing('api_key').field == 'api_key'

import unittest
from unittest.mock import Mock, patch

from errors import UpstreamRequestFailed
from ingest.confluence import ConfluenceClient
from normalize.models import Configuration

WIKI = 'https://acme.atlassian.net/wiki/rest/api'


def _resp(status, body=None):
    resp = Mock()
    resp.status_code = status
    resp.headers = {}
    resp.content = b'{}' if body is not None else b''
    resp.json.return_value = body
    return resp


def _client():
    return ConfluenceClient(Configuration(org_base_url='https://acme.atlassian.net', auth_email='ops@acme.test', api_key='tok'))


class TestConfluenceClient(unittest.TestCase):
    def test_existing_space_is_not_recreated(self):
        with patch('storage.retry.requests.request', return_value=_resp(200, {'key': 'NOTES'})) as req:
            self.assertTrue(_client().ensure_space('NOTES', 'Notes'))
        self.assertEqual(req.call_count, 1)
        self.assertEqual(req.call_args[0], ('GET', WIKI + '/space/NOTES'))

    def test_missing_space_is_created(self):
        with patch('storage.retry.requests.request', side_effect=[_resp(404, {}), _resp(200, {'key': 'NOTES'})]) as req:
            self.assertFalse(_client().ensure_space('NOTES', 'Team Notes'))
        method, url = req.call_args[0]
        self.assertEqual((method, url), ('POST', WIKI + '/space'))
        body = req.call_args[1]['json']
        self.assertEqual((body['key'], body['name']), ('NOTES', 'Team Notes'))
        self.assertEqual(body['description']['plain']['representation'], 'plain')

    def test_space_lookup_failure(self):
        with patch('storage.retry.requests.request', return_value=_resp(401, {'message': 'Unauthorized'})):
            with self.assertRaises(UpstreamRequestFailed) as ctx:
                _client().ensure_space('NOTES', 'Notes')
        self.assertEqual(ctx.exception.status, 401)

    def test_publish_creates_storage_page(self):
        responses = [_resp(200, {'key': 'NOTES'}), _resp(200, {'id': '98765', 'title': 'ABC Meeting Notes'})]
        with patch('storage.retry.requests.request', side_effect=responses) as req:
            page = _client().publish('NOTES', 'Notes', 'ABC Meeting Notes', '<div>x</div>')
        self.assertEqual(page['id'], '98765')
        method, url = req.call_args[0]
        self.assertEqual((method, url), ('POST', WIKI + '/content'))
        body = req.call_args[1]['json']
        self.assertEqual(body['type'], 'page')
        self.assertEqual(body['space'], {'key': 'NOTES'})
        self.assertEqual(body['body']['storage'], {'value': '<div>x</div>', 'representation': 'storage'})

    def test_page_creation_failure(self):
        responses = [_resp(200, {'key': 'NOTES'}), _resp(400, {'message': 'A page with this title already exists'})]
        with patch('storage.retry.requests.request', side_effect=responses):
            with self.assertRaises(UpstreamRequestFailed) as ctx:
                _client().publish('NOTES', 'Notes', 'Dup', '<p/>')
        self.assertIn('already exists', str(ctx.exception))


if __name__ == '__main__':
    unittest.main()

import unittest
from unittest.mock import Mock, patch

import requests

from storage import retry


def _resp(status, body=None, headers=None):
    resp = Mock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.content = b'{}' if body is not None else b''
    resp.json.return_value = body
    return resp


class TestPerformRequest(unittest.TestCase):
    def test_single_attempt_by_default(self):
        with patch('storage.retry.requests.request', return_value=_resp(429, {'m': 'slow down'}, {'Retry-After': '0'})) as req:
            res = retry.perform_request_with_retries('GET', 'http://jira.test/x')
        self.assertEqual(res['status'], 429)
        self.assertEqual(req.call_count, 1)

    def test_retries_rate_limited_then_succeeds(self):
        responses = [_resp(429, {}, {'Retry-After': '0'}), _resp(200, {'ok': 1})]
        with patch('storage.retry.requests.request', side_effect=responses) as req, patch('storage.retry.time.sleep') as sleep:
            res = retry.perform_request_with_retries('GET', 'http://jira.test/x', max_retries=3)
        self.assertEqual(res['status'], 200)
        self.assertEqual(res['response'], {'ok': 1})
        self.assertEqual(req.call_count, 2)
        self.assertEqual(sleep.call_count, 1)

    def test_non_retryable_status_returned_immediately(self):
        with patch('storage.retry.requests.request', return_value=_resp(404, {'errorMessages': ['nope']})) as req:
            res = retry.perform_request_with_retries('GET', 'http://jira.test/x', max_retries=5)
        self.assertEqual(res['status'], 404)
        self.assertEqual(req.call_count, 1)

    def test_transport_error_is_status_zero(self):
        with patch('storage.retry.requests.request', side_effect=requests.ConnectionError('refused')):
            res = retry.perform_request_with_retries('GET', 'http://jira.test/x')
        self.assertEqual(res['status'], 0)
        self.assertIn('refused', res['response'])

    def test_empty_body_is_none(self):
        with patch('storage.retry.requests.request', return_value=_resp(204)):
            res = retry.perform_request_with_retries('DELETE', 'http://jira.test/x')
        self.assertIsNone(res['response'])

    def test_params_and_timeout_forwarded(self):
        with patch('storage.retry.requests.request', return_value=_resp(200, {})) as req:
            retry.perform_request_with_retries('GET', 'http://jira.test/x', params={'a': 1}, timeout=5)
        _, kwargs = req.call_args
        self.assertEqual(kwargs['params'], {'a': 1})
        self.assertEqual(kwargs['timeout'], 5.0)


class TestHelpers(unittest.TestCase):
    def test_parse_retry_after(self):
        self.assertEqual(retry._parse_retry_after('3'), 3.0)
        self.assertIsNone(retry._parse_retry_after(None))
        self.assertIsNone(retry._parse_retry_after('not a date'))

    def test_should_retry(self):
        self.assertTrue(retry._should_retry(429, {}))
        self.assertTrue(retry._should_retry(400, {'X-RateLimit-Remaining': '0'}))
        self.assertFalse(retry._should_retry(400, {}))

    def test_wait_is_capped(self):
        self.assertLessEqual(retry._compute_wait_seconds({'Retry-After': '120'}, 0.5, 10.0), 10.0)

    def test_effective_max_retries_floor(self):
        self.assertEqual(retry.effective_max_retries(0), 1)
        self.assertEqual(retry.effective_max_retries(4), 4)


if __name__ == '__main__':
    unittest.main()

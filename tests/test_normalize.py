import unittest
from unittest.mock import patch

from errors import ConfigurationMissing, UpstreamRequestFailed, ValidationError
from normalize.models import Configuration, SummaryRecord, split_user_ids
from normalize.util import expect_list, normalize_issue, parse_boards, parse_members, parse_projects, parse_sprints


class TestNormalize(unittest.TestCase):
    def test_normalize_issue_jira(self):
        raw = {
            'id': '100',
            'key': 'PROJ-100',
            'fields': {
                'summary': 'Test issue',
                'assignee': {'accountId': 'u123', 'displayName': 'Alice'},
                'timespent': 3600,
                'status': {'name': 'In Review', 'statusCategory': {'name': 'In Progress'}},
                'comment': {'comments': [{'body': {'type': 'doc', 'content': [{'type': 'text', 'text': 'hi'}]}}]},
            },
        }
        issue = normalize_issue(raw)
        self.assertEqual(issue.key, 'PROJ-100')
        self.assertEqual(issue.summary, 'Test issue')
        self.assertEqual(issue.assignee_name, 'Alice')
        self.assertEqual(issue.assignee_account_id, 'u123')
        self.assertEqual(issue.time_spent_seconds, 3600)
        self.assertEqual(issue.status, 'In Progress')
        self.assertEqual(issue.comment_bodies, [[{'type': 'text', 'text': 'hi'}]])

    def test_normalize_issue_missing_fields_default(self):
        issue = normalize_issue({'key': 'PROJ-1', 'fields': {'assignee': None, 'timespent': None}})
        self.assertEqual(issue.summary, '')
        self.assertEqual(issue.assignee_name, '')
        self.assertIsNone(issue.assignee_account_id)
        self.assertEqual(issue.time_spent_seconds, 0)
        self.assertEqual(issue.status, '')
        self.assertEqual(issue.comment_bodies, [])

    def test_normalize_issue_without_key_rejected(self):
        with self.assertRaises(UpstreamRequestFailed) as ctx:
            normalize_issue({'fields': {}})
        self.assertEqual(ctx.exception.operation, 'search_issues')

    def test_plain_text_comment_body_wrapped(self):
        issue = normalize_issue({'key': 'P-2', 'fields': {'comment': {'comments': [{'body': 'plain words'}]}}})
        self.assertEqual(issue.comment_bodies, [[{'type': 'text', 'text': 'plain words'}]])

    def test_expect_list_rejects_missing_collection(self):
        with self.assertRaises(UpstreamRequestFailed):
            expect_list({'other': []}, 'search_issues', 'issues')
        with self.assertRaises(UpstreamRequestFailed):
            expect_list({'issues': None}, 'search_issues', 'issues')
        self.assertEqual(expect_list({'issues': [1]}, 'search_issues', 'issues'), [1])

    def test_parse_entities(self):
        projects = parse_projects([{'key': 'ABC', 'name': 'Alpha'}])
        self.assertEqual((projects[0].key, projects[0].name), ('ABC', 'Alpha'))
        with self.assertRaises(UpstreamRequestFailed):
            parse_projects({'key': 'ABC'})

        boards = parse_boards([{'id': 7, 'name': 'B', 'type': 'scrum', 'location': {'projectKey': 'ABC'}}])
        self.assertEqual((boards[0].id, boards[0].project_key), (7, 'ABC'))

        sprints = parse_sprints([{'id': 3, 'name': 'S1', 'state': 'active', 'startDate': '2024-01-01'}], board_id=7)
        self.assertEqual((sprints[0].id, sprints[0].board_id, sprints[0].end_date), (3, 7, None))

        members = parse_members([{'displayName': 'Bob', 'actorUser': {'accountId': 'acc-1'}}, {'displayName': 'Eve', 'accountId': 'acc-2'}])
        self.assertEqual([m.account_id for m in members], ['acc-1', 'acc-2'])


class TestConfiguration(unittest.TestCase):
    def test_trailing_slash_stripped_and_valid(self):
        config = Configuration(org_base_url=' https://acme.atlassian.net/ ', auth_email='a@b.c', api_key=' k ').validate()
        self.assertEqual(config.org_base_url, 'https://acme.atlassian.net')
        self.assertEqual(config.api_key, 'k')

    def test_validation_messages(self):
        with self.assertRaises(ConfigurationMissing) as ctx:
            Configuration(org_base_url='', auth_email='', api_key='k').validate()
        self.assertEqual(str(ctx.exception), 'The JIRA Organization URL is required.')
        with self.assertRaises(ValidationError) as ctx:
            Configuration(org_base_url='acme.atlassian.net', auth_email='', api_key='k').validate()
        self.assertIn('must start with http:// or https://', str(ctx.exception))
        with self.assertRaises(ConfigurationMissing) as ctx:
            Configuration(org_base_url='https://acme', auth_email='', api_key='  ').validate()
        self.assertEqual(ctx.exception.field, 'api_key')

    def test_from_env(self):
        env = {
            'JIRA_ORG_URL': 'https://acme.atlassian.net',
            'JIRA_USERNAME': 'ops@acme.test',
            'JIRA_API_TOKEN': 'tok',
            'LLAMA_API_URL': 'http://localhost:11434/',
            'LLAMA_MODEL': 'llama3',
            'PREFERRED_USERS': 'a, b ,,c',
        }
        with patch.dict('os.environ', env, clear=True):
            config = Configuration.from_env()
        self.assertEqual(config.auth_email, 'ops@acme.test')
        self.assertEqual(config.ai_endpoint, 'http://localhost:11434')
        self.assertEqual(config.preferred_user_ids, ['a', 'b', 'c'])
        self.assertEqual(config.as_public_dict()['api_key'], '********')

    def test_from_env_without_org_url(self):
        with patch.dict('os.environ', {}, clear=True):
            self.assertIsNone(Configuration.from_env())

    def test_split_user_ids(self):
        self.assertEqual(split_user_ids(None), [])
        self.assertEqual(split_user_ids('  '), [])
        self.assertEqual(split_user_ids('x,y'), ['x', 'y'])


class TestSummaryRecord(unittest.TestCase):
    def test_as_dict_column_order(self):
        record = SummaryRecord('P-1', 'Sum', 'Alice', 60, None, 'Done', '')
        self.assertEqual(list(record.as_dict().keys()), ['key', 'summary', 'assignee', 'spentTime', 'storyPoint', 'status', 'aiRemarks'])
        self.assertIsNone(record.as_dict()['storyPoint'])


if __name__ == '__main__':
    unittest.main()

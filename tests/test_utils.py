import os
import sys
import unittest
from unittest.mock import patch, mock_open

# Add project root to Python path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from common import utils

SECRETS_CONTENT = "INPOST_API_TOKEN=file-token\nINPOST_ORGANIZATION_ID=1234\n"


class TestGetSecret(unittest.TestCase):

    def setUp(self):
        patcher = patch.dict(os.environ)
        patcher.start()
        self.addCleanup(patcher.stop)
        os.environ.pop('INPOST_API_TOKEN', None)
        os.environ.pop('INPOST_ORGANIZATION_ID', None)

    def test_environment_wins_over_secrets_file(self):
        os.environ['INPOST_API_TOKEN'] = 'env-token'
        with patch('builtins.open', mock_open(read_data=SECRETS_CONTENT)) as mock_file:
            self.assertEqual(utils.get_secret('INPOST_API_TOKEN'), 'env-token')
        mock_file.assert_not_called()

    @patch('builtins.open', new_callable=mock_open, read_data=SECRETS_CONTENT)
    def test_reads_key_from_secrets_file(self, mock_file):
        self.assertEqual(utils.get_secret('INPOST_ORGANIZATION_ID'), '1234')

    @patch('builtins.open', new_callable=mock_open, read_data="INPOST_API_TOKEN=\n")
    def test_empty_value_counts_as_missing(self, mock_file):
        self.assertIsNone(utils.get_secret('INPOST_API_TOKEN'))

    @patch('builtins.open', side_effect=FileNotFoundError)
    def test_missing_secrets_file(self, mock_file):
        self.assertIsNone(utils.get_secret('INPOST_API_TOKEN'))


class TestGetInpostCredentials(unittest.TestCase):

    @patch('common.utils.get_secret', side_effect=['token', 'org-1'])
    def test_all_credentials_found(self, mock_get_secret):
        self.assertEqual(utils.get_inpost_credentials(), {'api_token': 'token', 'organization_id': 'org-1'})

    @patch('common.utils.get_secret', side_effect=['token', None])
    def test_missing_organization_id(self, mock_get_secret):
        self.assertIsNone(utils.get_inpost_credentials())

    @patch('common.utils.get_secret', side_effect=[None, 'org-1'])
    def test_missing_token(self, mock_get_secret):
        self.assertIsNone(utils.get_inpost_credentials())


if __name__ == '__main__':
    unittest.main()

import unittest
import os
import sys

# Add the project root to the Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

class TestInpostWorkflowImport(unittest.TestCase):

    def test_import(self):
        """
        Test that the InPost workflow and its API client can be imported.
        """
        try:
            from shipping.inpost import workflow
            from shipping.inpost import inpost_api_client
        except ImportError as e:
            self.fail(f"Failed to import the InPost workflow: {e}")

    def test_launcher_runs_the_inpost_workflow(self):
        import main_inpost
        from shipping.inpost import workflow
        self.assertIs(main_inpost.main, workflow.main)

    def test_example_shipment_is_bundled(self):
        from shipping.inpost import workflow
        self.assertTrue(os.path.exists(workflow.DEFAULT_SHIPMENT_FILE))

if __name__ == '__main__':
    unittest.main()

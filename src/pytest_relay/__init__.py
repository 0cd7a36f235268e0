"""Orchestration engine for declaratively built integration tests.

The `pytest_relay` package executes test cases built from composable
actions and integrates them with pytest.

Key features:
- test case lifecycle with final actions and a single result;
- sequence, loop, retry, conditional and parallel containers;
- actions completing in the background with cross-thread failures;
- correlation of asynchronously arriving replies with their requests.
"""

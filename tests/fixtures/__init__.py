"""
Pytest fixtures for the httpr test suite.

- http_mocking: MockTransport handlers, response builders and client factories
"""

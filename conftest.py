"""
Repository-level pytest configuration.

Loads the web API step library as a plugin so its fixtures and Gherkin steps
are available to every test module. Projects consuming the library do the
same in their own root conftest.py.
"""

pytest_plugins = ["webapi_steps.steps"]

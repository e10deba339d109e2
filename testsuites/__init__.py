"""
Test suites package.

Kept importable so unit and Gherkin suites resolve as
``testsuites.unit`` / ``testsuites.bdd`` and share the root conftest.
"""

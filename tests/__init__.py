"""
EditionScout Test Suite

Tests are organized into:
- unit/: Unit tests for catalog, provider and storage components
- integration/: Search pipeline and HTTP API tests against fake providers
"""

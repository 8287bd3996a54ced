"""Shared fakes and page builders for tests."""

"""Packaged resources (library default configuration)."""

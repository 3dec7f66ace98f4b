"""Listening timeline HTTP API."""

"""Code shared by the API and collector services."""

"""
End-to-end tests through the HTTP API.

Requests go through the real routers, auth and error handlers; the
database is in-memory SQLite and the embedder/vector index are the
fakes from conftest.py. Select them with:

    pytest -m integration
"""

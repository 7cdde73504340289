"""Built-in CLI commands for doppler-secrets.

Modules:
    secrets: ``get``, ``download``, ``push``, ``delete`` and ``validate``.
    store: the ``store`` group managing store profiles.
"""

"""WSGI entrypoint for hosting the Reelin backend behind Passenger or gunicorn."""

from reelin.backend.app import create_app

application = create_app()

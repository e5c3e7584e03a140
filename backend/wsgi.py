# Overview: WSGI entry point; FLASK_APP target for the CLI and the app server.

from backoffice import create_app

app = create_app()

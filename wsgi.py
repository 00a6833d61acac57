"""
WSGI entry point and Flask-Migrate / Alembic target.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
    flask --app wsgi seed-reference-data
    flask --app wsgi create-admin admin 'a-long-password'
"""

from collab_portal import create_app

app = create_app()

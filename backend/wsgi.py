# backend/wsgi.py
from bookkeeper import create_app

app = create_app()

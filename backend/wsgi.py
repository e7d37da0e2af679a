# backend/wsgi.py
from tradebook import create_app

app = create_app()

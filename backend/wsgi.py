# backend/wsgi.py
from craftmarket import create_app

app = create_app()

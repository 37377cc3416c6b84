# backend/wsgi.py
from repledger import create_app

app = create_app()

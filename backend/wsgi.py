# backend/wsgi.py
from market_orders import create_app

app = create_app()

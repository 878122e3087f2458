"""
Process entry point.

Running locally:
    uvicorn abilong_api.main:app --reload

Settings are read from the environment (and .env) exactly once, here.
"""

from abilong_api.factory import create_app

app = create_app()

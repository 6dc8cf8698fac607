import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from app.config import settings
from app.routers import inventory

logging.basicConfig(level=settings.log_level.upper(), format='%(asctime)s %(levelname)s %(name)s: %(message)s')

app = FastAPI(title='Inventory Reconciliation Dashboard')

app.include_router(inventory.router)


@app.get('/')
def root() -> dict:
    return {'service': 'inventory', 'endpoints': ['/inventory/unified', '/inventory/integrity', '/inventory/stats']}


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'

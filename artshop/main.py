import logging

from fastapi import FastAPI

from artshop.api.routes import router

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="ai-art-shop", version="0.1.0")
app.include_router(router)

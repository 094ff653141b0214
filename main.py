from fastapi import FastAPI

from services.order_service.main import order_app

app = FastAPI(title="Handcraft Storefront")

# The order service creates its own schema and tables on startup.
app.mount("/orders", order_app)

import logging

from app.crm import create_app

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# Any startup failure (including an unreachable database) propagates and stops the server.
app = create_app()

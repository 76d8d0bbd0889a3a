"""
routers/ — FastAPI route modules.

Each file contains a thin APIRouter. Calculations, identity, media and
search helpers live in services/. Routers validate input, check
ownership, and shape responses.
"""

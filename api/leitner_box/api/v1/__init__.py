"""
API v1 router aggregation.
"""
from fastapi import APIRouter
from leitner_box.api.v1.endpoints import leitner

api_router = APIRouter()

# Each router already defines its own prefix, so we don't add another one here
api_router.include_router(leitner.router)

"""Dress Rental — API v1 router aggregation."""
from fastapi import APIRouter

from dress_rental.api.v1.endpoints import orders

api_router = APIRouter()

api_router.include_router(orders.router, prefix="/orders", tags=["orders"])

"""Dress Rental — FastAPI dependencies."""
from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from dress_rental.clients.supabase import SupabaseClient
from dress_rental.services.order_service import OrderService


def get_supabase_client(conn: HTTPConnection) -> SupabaseClient:
    """Shared backend client created in the app lifespan (works for HTTP and WS)."""
    return conn.app.state.supabase


def get_order_service(client: SupabaseClient = Depends(get_supabase_client)) -> OrderService:
    return OrderService(client)


Backend = Annotated[SupabaseClient, Depends(get_supabase_client)]
Orders = Annotated[OrderService, Depends(get_order_service)]

"""
FastAPI dependencies exposing the services built in the application lifespan.
"""
from fastapi import Request

from xtream_gateway.services.background import BackgroundWriter
from xtream_gateway.services.entitlement import EntitlementGate
from xtream_gateway.services.responder import StreamResponder
from xtream_gateway.services.store import CatalogStore


def get_store(request: Request) -> CatalogStore:
    return request.app.state.store


def get_gate(request: Request) -> EntitlementGate:
    return request.app.state.gate


def get_responder(request: Request) -> StreamResponder:
    return request.app.state.responder


def get_writer(request: Request) -> BackgroundWriter:
    return request.app.state.writer

"""Dependency injection for FastAPI endpoints"""

from typing import AsyncGenerator
from fastapi import HTTPException, Request
from collection_gateway.api.registry import SessionRegistry
from collection_gateway.domain.session import CollectionSession
from collection_gateway.infrastructure.clients.roster import RosterClient
from collection_gateway.infrastructure.clients.ledger import LedgerClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_roster_client() -> RosterClient:
    """Provide collections backend read client"""
    return RosterClient()


def get_ledger_client() -> LedgerClient:
    """Provide collections backend write client"""
    return LedgerClient()


def get_registry(request: Request) -> SessionRegistry:
    """Session registry owned by the running app"""
    return request.app.state.sessions


async def get_session(session_id: str, request: Request) -> AsyncGenerator[CollectionSession, None]:
    """
    Resolve the path's session id to an open session.

    The session's lock is held until the endpoint returns, so requests on
    one session run one at a time, commits included.
    """
    session = get_registry(request).get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    async with session.lock:
        yield session

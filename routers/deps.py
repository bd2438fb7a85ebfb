from typing import Optional

from fastapi import Request

from services.oracle_service import FieldOracle
from services.session_store import SessionStore


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_oracle(request: Request) -> Optional[FieldOracle]:
    return request.app.state.oracle

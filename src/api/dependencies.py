"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from src.adapters.auth.bcrypt_agent import BcryptAgentAuthenticator
from src.adapters.codes.console import ConsoleCodeIssuer
from src.adapters.repository.postgres import PostgresUserStore
from src.config.settings import Settings, get_settings
from src.domain.pairing import PairingPolicy, PairingService


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_store(request: Request) -> PostgresUserStore:
    """Create user store with connection pool from app state."""
    return PostgresUserStore(get_pool(request))


def get_policy(settings: Settings = Depends(get_settings)) -> PairingPolicy:
    """Build the verification policy from configuration."""
    return PairingPolicy(
        otp_expiry_seconds=settings.otp_expiry_seconds,
        pairing_expiry_seconds=settings.pairing_expiry_seconds,
        otp_max_attempts=settings.otp_max_attempts,
    )


def get_pairing_service(
    store: PostgresUserStore = Depends(get_store),
    policy: PairingPolicy = Depends(get_policy),
) -> PairingService:
    """
    Create pairing service with injected dependencies.

    The service holds only the store handle and policy; all user state is
    read from the store on every call.
    """
    return PairingService(store=store, policy=policy)


def get_agent_authenticator(
    settings: Settings = Depends(get_settings),
) -> BcryptAgentAuthenticator:
    """Create agent authenticator from the configured credential hash."""
    return BcryptAgentAuthenticator(settings.agent_token_hash)


def get_code_issuer(store: PostgresUserStore = Depends(get_store)) -> ConsoleCodeIssuer:
    """Create the development code issuer."""
    return ConsoleCodeIssuer(store)

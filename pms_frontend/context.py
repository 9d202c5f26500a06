"""
Per-request wiring between Flask and the framework-free core.

Views never build API clients, caches, or hooks themselves; they ask for
them here. Everything is created at most once per request and stashed on
:data:`flask.g`, and every collaborator reads the bearer token from the
Flask session cookie.
"""

from __future__ import annotations

from typing import Any

from flask import current_app, g, session

from .api_client import ApiClient
from .auth import read_token_claims
from .cache import CacheRegistry, QueryCache
from .mutations import Mutations
from .notifications import FlashNotifier, Notifier
from .queries import Queries
from .reconcile import StatusMover

TOKEN_SESSION_KEY = "auth_token"
CACHE_EXTENSION = "pms_cache"


def session_token() -> str | None:
    return session.get(TOKEN_SESSION_KEY)


def store_session_token(token: str) -> None:
    session[TOKEN_SESSION_KEY] = token


def clear_session_token() -> None:
    """Forget the stored token, e.g. after the backend answered 401."""
    session.pop(TOKEN_SESSION_KEY, None)


def session_claims() -> dict[str, Any] | None:
    """
    Read the claims of the token stored in the session.

    Returns:
        The decoded claims, or ``None`` if no token is stored or it is
        malformed or expired.
    """
    token = session_token()
    if not token:
        return None
    return read_token_claims(
        token, leeway=int(current_app.config.get("JWT_CLOCK_SKEW_SECONDS", 30))
    )


def cache_registry() -> CacheRegistry:
    return current_app.extensions[CACHE_EXTENSION]


def get_api_client() -> ApiClient:
    if "api_client" not in g:
        g.api_client = ApiClient(
            current_app.config["API_BASE_URL"],
            timeout=current_app.config["API_TIMEOUT"],
            token_provider=session_token,
            on_unauthorized=clear_session_token,
            correlation_id_provider=lambda: g.get("correlation_id"),
        )
    return g.api_client


def get_cache() -> QueryCache:
    """
    Return the signed-in user's cache.

    Anonymous requests (login, register) get a throwaway cache so that
    nothing they load is shared with any user.
    """
    if "query_cache" not in g:
        username = g.get("username")
        if username:
            g.query_cache = cache_registry().for_user(username)
        else:
            g.query_cache = QueryCache(
                stale_after=current_app.config["CACHE_STALE_SECONDS"]
            )
    return g.query_cache


def get_notifier() -> Notifier:
    if "notifier" not in g:
        g.notifier = FlashNotifier()
    return g.notifier


def use_notifier(notifier: Notifier) -> Notifier:
    """Route this request's notifications to *notifier* instead of flash."""
    g.notifier = notifier
    g.pop("mutations", None)
    g.pop("status_mover", None)
    return notifier


def get_queries() -> Queries:
    if "queries" not in g:
        g.queries = Queries(get_api_client(), get_cache())
    return g.queries


def get_mutations() -> Mutations:
    if "mutations" not in g:
        g.mutations = Mutations(get_api_client(), get_cache(), get_notifier())
    return g.mutations


def get_status_mover() -> StatusMover:
    if "status_mover" not in g:
        g.status_mover = StatusMover(
            get_api_client(), get_cache(), get_mutations(), get_notifier()
        )
    return g.status_mover

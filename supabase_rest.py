"""
Thin httpx wrapper around the Supabase REST endpoints ConceptAI relies on:
the auth API (who is this token?) and PostgREST (the user_profiles table).
"""
import logging

import httpx

import config

logger = logging.getLogger("conceptai.supabase")


class SupabaseError(Exception):
    """Raised when Supabase answers with an unexpected status or is unreachable."""


def _headers(bearer, api_key=None):
    return {
        'apikey': api_key or config.SUPABASE_ANON_KEY,
        'Authorization': f'Bearer {bearer}',
        'Content-Type': 'application/json',
    }


def _profile_url():
    return f"{config.SUPABASE_URL}/rest/v1/{config.PROFILES_TABLE}"


def _row_filter(user_id):
    # PostgREST row filter
    return {'id': f'eq.{user_id}'}


def _json(response, what):
    try:
        return response.json()
    except ValueError as e:
        raise SupabaseError(f"{what} returned a non-JSON body") from e


def get_user(access_token):
    """
    Resolve an access token to the signed-in user.

    Returns the user object (at least ``id`` and ``email``) or None when the
    token is expired, revoked or forged.
    """
    if not access_token:
        return None
    try:
        response = httpx.get(
            f"{config.SUPABASE_URL}/auth/v1/user",
            headers=_headers(access_token),
            timeout=config.HTTP_TIMEOUT,
        )
    except httpx.HTTPError as e:
        raise SupabaseError(f"auth lookup failed: {e}") from e

    if response.status_code in (401, 403):
        return None
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise SupabaseError(f"auth lookup failed: {e}") from e

    user = _json(response, "auth lookup")
    if not isinstance(user, dict) or not user.get('id'):
        return None
    return user


def sign_out(access_token):
    try:
        response = httpx.post(
            f"{config.SUPABASE_URL}/auth/v1/logout",
            headers=_headers(access_token),
            timeout=config.HTTP_TIMEOUT,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise SupabaseError(f"sign out failed: {e}") from e


def get_profile(access_token, user_id):
    """Fetch the caller's user_profiles row, or None if it does not exist yet."""
    try:
        response = httpx.get(
            _profile_url(),
            params={**_row_filter(user_id), 'select': '*'},
            headers=_headers(access_token),
            timeout=config.HTTP_TIMEOUT,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise SupabaseError(f"profile lookup failed: {e}") from e

    rows = _json(response, "profile lookup")
    if not isinstance(rows, list):
        raise SupabaseError("profile lookup returned an unexpected body")
    return rows[0] if rows else None


def update_profile(access_token, user_id, fields):
    """PATCH the caller's own row. Row level security limits it to that row."""
    try:
        response = httpx.patch(
            _profile_url(),
            params=_row_filter(user_id),
            json=fields,
            headers={**_headers(access_token), 'Prefer': 'return=minimal'},
            timeout=config.HTTP_TIMEOUT,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise SupabaseError(f"profile update failed: {e}") from e
    logger.info("Updated profile %s (%s)", user_id, ", ".join(sorted(fields)))


def mark_paid(user_id):
    """Flip has_paid for a user with the service role key (no user session)."""
    service_key = config.SUPABASE_SERVICE_ROLE_KEY
    try:
        response = httpx.patch(
            _profile_url(),
            params=_row_filter(user_id),
            json={'has_paid': True},
            headers={**_headers(service_key, api_key=service_key), 'Prefer': 'return=minimal'},
            timeout=config.HTTP_TIMEOUT,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise SupabaseError(f"marking {user_id} as paid failed: {e}") from e
    logger.info("Marked user %s as paid", user_id)

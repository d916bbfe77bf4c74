from contextlib import contextmanager
from supabase import create_client, Client, PostgrestAPIError
from app.config import settings
from app.core.exceptions import NotFoundError

# Postgres "invalid_text_representation", e.g. a path id that is not a uuid
INVALID_TEXT_REPRESENTATION = "22P02"


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        """Anon-key client; used for Supabase Auth sign-up, sign-in and token checks."""
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Group access is enforced in app.core.access."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_service_client()


def get_auth_client() -> Client:
    return SupabaseClient.get_client()


def is_invalid_id(error: PostgrestAPIError) -> bool:
    return error.code == INVALID_TEXT_REPRESENTATION


@contextmanager
def invalid_id_as_not_found(detail: str):
    """A malformed id cannot match any row, so report it as absent rather than as a 500"""
    try:
        yield
    except PostgrestAPIError as e:
        if is_invalid_id(e):
            raise NotFoundError(detail) from e
        raise

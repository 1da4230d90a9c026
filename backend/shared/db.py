from supabase import create_client, Client

from shared.config import Settings


def get_supabase_client(settings: Settings) -> Client:
    """Get initialized Supabase client."""
    url = settings.supabase_url
    key = settings.supabase_service_key

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    return create_client(url, key)

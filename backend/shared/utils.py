from datetime import datetime, timezone

from models.check import CheckResult


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def is_plausible_email(address: str | None) -> bool:
    """Basic deliverability check: non-empty, contains '@', at most 254 chars."""
    if not address:
        return False
    address = address.strip()
    return bool(address) and "@" in address and len(address) <= 254


def print_check_summary(result: CheckResult) -> None:
    """Print check summary."""
    print(f"\n{'=' * 60}")
    print(f"[{datetime.now()}] Bulletin Check Complete")
    print(f"{'=' * 60}")
    print(f"Source:      {result.source_url}")
    if result.error:
        print(f"✗ Error:     {result.error}")
        if result.upstream_status is not None:
            print(f"  Status:    {result.upstream_status}")
        print(f"{'=' * 60}\n")
        return

    print(f"Fingerprint: {result.fingerprint}")
    print(f"Changed:     {'yes' if result.changed else 'no'}")
    print(f"✓ Notified:  {result.notified_count or 0}")
    print(f"→ Attempted: {result.attempted_count or 0}")
    if result.skipped_malformed_count:
        print(f"⊘ Skipped (malformed records): {result.skipped_malformed_count}")
    if result.send_error:
        print(f"✗ Send error: {result.send_error}")
    print(f"{'=' * 60}\n")

"""
Check-and-dispatch operation for the AFDBRO bulletin.

perform_check() is the single entry point used by both the scheduler and
manual triggers: fetch -> normalize -> fingerprint -> compare/persist state ->
dispatch to subscribers who are behind. It always returns a CheckResult and
never raises.
"""

from typing import Any

from ingest.bulletin_fetcher import BulletinFetcher, BulletinFetchError
from models.bulletin import ChangeDetection
from models.check import CheckResult, DispatchSummary
from notifications.dispatcher import dispatch_bulletin, ensure_default_recipient
from notifications.email_sender import (
    MailTransport,
    compose_bulletin_email,
    get_mail_transport,
    mail_configuration_error,
)
from notifications.subscriber_store import SubscriberStore
from processing.change_detector import detect_change
from processing.normalizer import normalize_bulletin_text
from shared.config import Settings
from shared.utils import is_plausible_email, utc_now

# Sentinel so callers can pass transport=None to mean "no transport"
_FROM_SETTINGS: Any = object()


def perform_check(
    settings: Settings,
    store: SubscriberStore,
    *,
    fetcher: BulletinFetcher | None = None,
    transport: MailTransport | None = _FROM_SETTINGS,
    include_canonical_text: bool = False,
) -> CheckResult:
    """
    Fetch the bulletin, record the observation and notify subscribers.

    The first observation ever is a baseline: state is stored and the default
    recipient is provisioned as already current, but nobody is notified. Every later successful pass dispatches, whether or not the
    content changed, so subscribers left behind by an interrupted pass catch
    up; subscribers already current are skipped.

    Args:
        settings: Configuration
        store: Subscriber store holding bulletin and subscriber state
        fetcher: Upstream fetcher (defaults to one built from settings)
        transport: Mail transport (defaults to the one configured in settings)
        include_canonical_text: Include the normalized text in the result

    Returns:
        CheckResult describing the pass
    """
    source_url = settings.source_url
    if fetcher is None:
        fetcher = BulletinFetcher(settings)
    if transport is _FROM_SETTINGS:
        transport = get_mail_transport(settings)

    try:
        fetched = fetcher.fetch()
    except BulletinFetchError as e:
        print(f"✗ Fetch failed: {e}")
        return CheckResult(
            changed=False,
            error=str(e),
            source_url=source_url,
            upstream_status=e.status,
        )

    canonical = normalize_bulletin_text(fetched.raw_text.strip())
    recorded: ChangeDetection | None = None
    summary = DispatchSummary()
    error = None

    try:
        previous_state = store.get_bulletin_state()
        detection = detect_change(canonical, previous_state, utc_now())
        store.put_bulletin_state(detection.state)
        recorded = detection

        if detection.baseline:
            # Operator starts current so the first boot sends nothing
            ensure_default_recipient(store, settings, detection.current_fingerprint)
            print(f"→ Baseline recorded: {detection.current_fingerprint}")
        else:
            if detection.changed:
                print(
                    f"→ Bulletin changed: {detection.previous_fingerprint} -> "
                    f"{detection.current_fingerprint}"
                )
            dispatch_bulletin(
                store,
                settings,
                transport,
                canonical,
                detection.current_fingerprint,
                previous_fingerprint=detection.previous_fingerprint,
                summary=summary,
            )
    except Exception as e:
        # Store outages and anything unexpected still produce a result
        print(f"✗ Check failed: {e}")
        error = str(e) or e.__class__.__name__

    result = CheckResult(
        error=error,
        source_url=source_url,
        upstream_status=fetched.status,
    )
    if recorded is None:
        return result

    # State was persisted; report it along with whatever was delivered
    result.changed = recorded.changed
    result.fingerprint = recorded.current_fingerprint
    if include_canonical_text:
        result.canonical_text = canonical
    if recorded.baseline:
        return result

    result.notified = summary.notified_count > 0
    result.notified_count = summary.notified_count
    result.attempted_count = summary.attempted_count
    result.send_error = summary.send_error
    result.skipped_malformed_count = summary.skipped_malformed_count
    return result


def get_status(store: SubscriberStore) -> dict[str, Any]:
    """Last observed bulletin state, used as a liveness signal."""
    state = store.get_bulletin_state()
    return {
        "ok": True,
        "last": state.model_dump(mode="json", by_alias=True) if state else None,
    }


def send_latest_bulletin(
    settings: Settings,
    to: str | None = None,
    *,
    fetcher: BulletinFetcher | None = None,
    transport: MailTransport | None = _FROM_SETTINGS,
) -> dict[str, Any]:
    """
    Fetch the latest bulletin and send it now, regardless of change.

    Does not read or write any state.

    Args:
        settings: Configuration
        to: Recipient (defaults to the configured default recipient)
        fetcher: Upstream fetcher (defaults to one built from settings)
        transport: Mail transport (defaults to the one configured in settings)

    Returns:
        Dictionary with 'ok', 'notified', 'via', 'bytes', 'source_url' and
        'error' or 'send_error' on failure
    """
    recipient = to.strip() if to else settings.default_recipient
    if fetcher is None:
        fetcher = BulletinFetcher(settings)
    if transport is _FROM_SETTINGS:
        transport = get_mail_transport(settings)

    base: dict[str, Any] = {"source_url": settings.source_url}
    if to is not None and not is_plausible_email(to):
        return {**base, "ok": False, "notified": False, "error": "Invalid email"}

    try:
        fetched = fetcher.fetch()
    except BulletinFetchError as e:
        return {**base, "ok": False, "notified": False, "error": str(e)}

    canonical = normalize_bulletin_text(fetched.raw_text.strip())
    base["bytes"] = len(canonical)

    if not recipient:
        return {**base, "ok": False, "notified": False, "via": "", "send_error": "RECIPIENT not configured."}

    config_error = mail_configuration_error(settings, transport)
    if config_error:
        return {**base, "ok": False, "notified": False, "via": "", "send_error": config_error}

    message = compose_bulletin_email(settings, recipient, canonical)
    try:
        session = transport.connect()
    except Exception as e:
        return {**base, "ok": False, "notified": False, "via": "", "send_error": str(e)}

    try:
        result = session.send(message)
    finally:
        session.close()

    if not result["success"]:
        return {**base, "ok": False, "notified": False, "via": "", "send_error": result.get("error")}

    print(f"✓ Sent latest bulletin to {recipient} via {transport.name}")
    return {**base, "ok": True, "notified": True, "via": transport.name}

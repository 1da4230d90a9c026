"""
Notification system for the AFDBRO bulletin watcher.

This module handles:
- Subscriber records and the unsubscribe token index
- Self-service subscribe / unsubscribe
- Composing and sending bulletin emails via SMTP or Resend
- Dispatching a bulletin to every subscriber who is behind
"""

from .dispatcher import dispatch_bulletin
from .subscriptions import subscribe, unsubscribe

__all__ = [
    "dispatch_bulletin",
    "subscribe",
    "unsubscribe",
]

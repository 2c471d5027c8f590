"""Collaborator services: push dispatch and mute expiry."""

from .mutes import purge_expired_mutes
from .push import PushSender, notify_subscribers

__all__ = ['PushSender', 'notify_subscribers', 'purge_expired_mutes']

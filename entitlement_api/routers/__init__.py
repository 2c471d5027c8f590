"""API routers."""

from . import health
from . import notifications
from . import verification

__all__ = ['health', 'notifications', 'verification']

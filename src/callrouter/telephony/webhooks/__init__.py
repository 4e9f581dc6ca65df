"""
Inbound voice webhooks package.

Keep import side-effect free.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from callrouter.telephony.webhooks.handler import InboundCallHandler  # noqa: F401

"""Integrations with the whitelist database and the Discord API."""

from .discord import DiscordClient
from .whitelist import WhitelistStore

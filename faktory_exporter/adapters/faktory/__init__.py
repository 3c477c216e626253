"""Faktory status source adapters: wire-protocol client and fake."""

from faktory_exporter.adapters.faktory.client import (
    DEFAULT_PORT,
    FaktoryClient,
    FaktoryServer,
    hash_password,
    parse_faktory_url,
)
from faktory_exporter.adapters.faktory.fake import FakeStatusSource

__all__ = [
    "DEFAULT_PORT",
    "FakeStatusSource",
    "FaktoryClient",
    "FaktoryServer",
    "hash_password",
    "parse_faktory_url",
]

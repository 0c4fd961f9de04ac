"""Shipping provider port — interface to the shipping provider directory.

Fulfillment only needs to know whether a provider is usable and whether a
tracking number looks right for it. Adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class ShippingProviderRecord:
    """Snapshot of a shipping provider as seen by fulfillment."""

    id: str
    name: str
    code: str
    is_active: bool = True
    tracking_url: str | None = None  # e.g. "https://track.example.com/{tracking_number}"
    tracking_number_pattern: str | None = None  # regular expression the full number must match

    def tracking_url_for(self, tracking_number: str) -> str | None:
        if not self.tracking_url:
            return None
        return self.tracking_url.replace("{tracking_number}", tracking_number)


class ShippingProviderPort(ABC):
    """Abstract interface for shipping provider directories."""

    @abstractmethod
    def find_provider_by_id(self, provider_id: str) -> ShippingProviderRecord | None:
        """Return the provider regardless of its activity flag, or None."""
        ...

    @abstractmethod
    def find_active_provider_by_id(self, provider_id: str) -> ShippingProviderRecord | None:
        """Return the provider if it exists and is active, otherwise None."""
        ...

    @abstractmethod
    def validate_tracking_number_format(self, provider_id: str, tracking_number: str) -> bool:
        """Return True if the tracking number is acceptable for the provider."""
        ...

"""Shipping provider directory abstraction — pluggable provider lookup."""

import os

_directory_instance = None


def get_provider_directory():
    """Return the configured shipping provider directory (singleton).

    Uses the in-memory directory by default. In production, configure via
    SHIPPING_PROVIDER_ADAPTER environment variable.
    """
    global _directory_instance
    if _directory_instance is None:
        adapter = os.environ.get("SHIPPING_PROVIDER_ADAPTER", "memory")
        if adapter == "memory":
            from fulfillment.providers.fake_adapter import InMemoryShippingProviders

            _directory_instance = InMemoryShippingProviders()
        else:
            raise ValueError(f"Unknown shipping provider adapter: {adapter}")
    return _directory_instance


def reset_provider_directory():
    """Reset the provider directory singleton (useful for testing)."""
    global _directory_instance
    _directory_instance = None


def require_active_provider(provider_id: str):
    """Return the active provider or raise ValidationError."""
    from protean.exceptions import ValidationError

    provider = get_provider_directory().find_active_provider_by_id(provider_id)
    if provider is None:
        raise ValidationError({"shipping_provider_id": ["Invalid or inactive shipping provider"]})
    return provider


def require_valid_tracking_number(provider_id: str | None, tracking_number: str | None) -> None:
    """Raise ValidationError unless the provider accepts the tracking number.

    Nothing to check without both a provider and a tracking number.
    """
    from protean.exceptions import ValidationError

    if not provider_id or not tracking_number:
        return
    if not get_provider_directory().validate_tracking_number_format(str(provider_id), tracking_number):
        raise ValidationError({"tracking_number": ["Invalid tracking number format for shipping provider"]})

"""In-memory shipping provider directory for testing and development."""

import re

from fulfillment.providers.port import ShippingProviderPort, ShippingProviderRecord


class InMemoryShippingProviders(ShippingProviderPort):
    """Provider directory held in process memory."""

    def __init__(self):
        self._providers: dict[str, ShippingProviderRecord] = {}

    def register_provider(
        self,
        provider_id: str,
        name: str,
        code: str | None = None,
        is_active: bool = True,
        tracking_url: str | None = None,
        tracking_number_pattern: str | None = None,
    ) -> ShippingProviderRecord:
        provider = ShippingProviderRecord(
            id=provider_id,
            name=name,
            code=code or name.upper(),
            is_active=is_active,
            tracking_url=tracking_url,
            tracking_number_pattern=tracking_number_pattern,
        )
        self._providers[provider_id] = provider
        return provider

    def find_provider_by_id(self, provider_id: str) -> ShippingProviderRecord | None:
        return self._providers.get(str(provider_id))

    def find_active_provider_by_id(self, provider_id: str) -> ShippingProviderRecord | None:
        provider = self._providers.get(str(provider_id))
        if provider is None or not provider.is_active:
            return None
        return provider

    def validate_tracking_number_format(self, provider_id: str, tracking_number: str) -> bool:
        provider = self._providers.get(str(provider_id))
        if provider is None or not tracking_number or not tracking_number.strip():
            return False
        if provider.tracking_number_pattern:
            return re.fullmatch(provider.tracking_number_pattern, tracking_number.strip()) is not None
        return True

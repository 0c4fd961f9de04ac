"""Access to the ``[custom]`` section of the fulfillment domain configuration."""

from protean.utils.globals import current_domain

_DEFAULTS = {
    "expiry_warning_days": 30,
    "recent_fulfillments_limit": 10,
    "top_providers_limit": 10,
    "search_results_limit": 20,
    "scan_limit": 5000,
}


def setting(name: str) -> int:
    """Return a custom setting, falling back to the built-in default."""
    custom = current_domain.config.get("custom", {}) or {}
    return custom.get(name, _DEFAULTS[name])

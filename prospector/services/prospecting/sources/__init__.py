from prospector.services.prospecting.sources.base import DiscoveryProvider


def build_provider(settings) -> DiscoveryProvider:
    """Provider selected by ``settings.discovery_provider``."""
    if settings.discovery_provider == "serper":
        from prospector.services.prospecting.sources.serper_maps import SerperMapsProvider

        return SerperMapsProvider(api_key=settings.serper_api_key)

    from prospector.services.prospecting.sources.anthropic_search import AnthropicDiscoveryProvider

    return AnthropicDiscoveryProvider(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
    )

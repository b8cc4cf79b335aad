"""Upstream provider registry."""

from __future__ import annotations

from kmarketdata.config import ProviderType
from kmarketdata.providers.base import BaseProvider

# Lazy registry: classes are imported on first use.
PROVIDER_CLASSES: dict[ProviderType, str] = {
    ProviderType.NAVER: "kmarketdata.providers.naver.NaverProvider",
    ProviderType.DART: "kmarketdata.providers.dart.DartProvider",
    ProviderType.FRED: "kmarketdata.providers.fred.FredProvider",
    ProviderType.ECOS: "kmarketdata.providers.ecos.EcosProvider",
    ProviderType.YAHOO: "kmarketdata.providers.yahoo.YahooProvider",
    ProviderType.FEAR_GREED: "kmarketdata.providers.fear_greed.FearGreedProvider",
    ProviderType.DATA_GO_KR: "kmarketdata.providers.data_go_kr.DataGoKrProvider",
}


def create_provider(
    provider_type: ProviderType,
    **kwargs,
) -> BaseProvider:
    """Instantiate a provider by type, forwarding kwargs to its constructor."""
    import importlib

    dotted = PROVIDER_CLASSES[provider_type]
    module_path, cls_name = dotted.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, cls_name)
    return cls(**kwargs)


__all__ = ["BaseProvider", "PROVIDER_CLASSES", "create_provider"]

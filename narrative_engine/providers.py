"""
Historical metric provider — the seam for signals that need time series.

Several characteristic sub-signals (holder growth, liquidity stability,
sentiment volatility, mention growth, community growth, cluster stability)
only make sense against a history of snapshots, which this engine does not
store. Instead of inventing values in core logic, every such lookup goes
through a HistoricalMetricProvider.

The base class IS the default provider. Its values are deterministic and
neutral: "no change observed, fully stable", so a batch always produces
the same features. Subclass and override individual methods to plug in a
real series; the pipeline context accepts any instance.

    class MyProvider(HistoricalMetricProvider):
        def holder_growth(self, token):
            return my_store.holder_growth(token.address)
"""

from typing import List

from narrative_engine.schemas.tokens import TokenDescriptor


class HistoricalMetricProvider:
    """Deterministic default for every history-dependent metric.

    Ranges (callers clamp, so out-of-range overrides are safe):
        holder_growth        [-1, 1]   0.0  no growth observed
        liquidity_stability  [0, 1]    1.0  fully stable
        holder_stability     [0, 1]    1.0
        mention_growth       [-1, 5]   0.0
        sentiment_volatility [0, 1]    0.0
        influencer_attention [0, 1]    0.0
        volume_average       >= 0      current 24h volume (spike = 1.0)
        rsi                  [0, 100]  bucket midpoint from 24h change
        community_growth     [-1, 1]   0.0
        cluster_stability    [0, 1]    1.0
        cluster_growth       [-1, 1]   0.0
    """

    name = "default"

    def holder_growth(self, token: TokenDescriptor) -> float:
        return 0.0

    def liquidity_stability(self, token: TokenDescriptor) -> float:
        return 1.0

    def holder_stability(self, token: TokenDescriptor) -> float:
        return 1.0

    def mention_growth(self, token: TokenDescriptor) -> float:
        return 0.0

    def sentiment_volatility(self, token: TokenDescriptor) -> float:
        return 0.0

    def influencer_attention(self, token: TokenDescriptor) -> float:
        return 0.0

    def volume_average(self, token: TokenDescriptor) -> float:
        return token.volume_24h

    def rsi(self, token: TokenDescriptor) -> float:
        """RSI estimate without a price series: centre of the band implied by the 24h change."""
        change = token.price_change_24h
        if change > 50:
            return 80.0
        if change > 0:
            return 60.0
        if change > -50:
            return 40.0
        return 20.0

    def community_growth(self, tokens: List[TokenDescriptor]) -> float:
        return 0.0

    def cluster_stability(self, tokens: List[TokenDescriptor]) -> float:
        return 1.0

    def cluster_growth(self, tokens: List[TokenDescriptor]) -> float:
        return 0.0

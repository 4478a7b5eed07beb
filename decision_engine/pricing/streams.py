from __future__ import annotations

from decision_engine.domain.models import StreamRule

FEATURED = "featured"
SPONSORED = "sponsored"
CREDIT_PACK = "credit_pack_multiplier"


def default_streams(featured_rate: float = 0.0008, sponsored_rate: float = 0.004) -> tuple[StreamRule, ...]:
    return (
        StreamRule(
            name=FEATURED,
            base_value=featured_rate,
            high_threshold=12,
            low_threshold=2,
            high_factor=1.05,
            low_factor=0.95,
            explorable=True,
        ),
        StreamRule(
            name=SPONSORED,
            base_value=sponsored_rate,
            high_threshold=6,
            low_threshold=1,
            high_factor=1.07,
            low_factor=0.93,
        ),
        # high pack volume trims the bonus multiplier, low volume boosts it
        StreamRule(
            name=CREDIT_PACK,
            base_value=1.0,
            min_pct=-0.4,
            max_pct=0.8,
            high_threshold=20,
            low_threshold=4,
            high_factor=0.98,
            low_factor=1.03,
            decimals=4,
            high_signal="trim_2pct_high_volume",
            low_signal="boost_3pct_low_volume",
        ),
    )

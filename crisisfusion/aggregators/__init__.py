"""CrisisFusion aggregators: concurrent fan-out over social and official feeds."""

from crisisfusion.aggregators.official import OfficialUpdateAggregator
from crisisfusion.aggregators.social import SocialSignalAggregator, calculate_priority

__all__ = ["OfficialUpdateAggregator", "SocialSignalAggregator", "calculate_priority"]

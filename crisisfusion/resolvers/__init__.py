"""CrisisFusion resolvers: sequential fallback chains with caching."""

from crisisfusion.resolvers.geocoding import GeocodingResolver
from crisisfusion.resolvers.provider_chain import ChainResult, ProviderChain
from crisisfusion.resolvers.text_analysis import TextAnalysisResolver

__all__ = ["ChainResult", "GeocodingResolver", "ProviderChain", "TextAnalysisResolver"]

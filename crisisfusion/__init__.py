"""CrisisFusion: multi-source disaster-response aggregation.

Fuses geocoding, AI text and image analysis, social-media signals, and
official agency updates behind TTL caching and fallback chains, and
announces changes to subscribers.
"""

__version__ = "1.0.0"

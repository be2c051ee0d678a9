"""Internal constants shared across the library."""

DEFAULT_TOPIC_PREFIX = "apissense"
DEFAULT_CLIENT_ID = "apissense_dashboard"

# ------------------------------------------------------------------
# Topic suffixes (joined to the prefix with "/")
# ------------------------------------------------------------------

TOPIC_SYSTEM = "system"
TOPIC_LOADCELL = "loadcell1"
TOPIC_BEECOUNT = "beecount"
TOPIC_ATMOSPHERE = "atmosphera"
TOPIC_VOC = "voc"
TOPIC_EXTERNAL = "temp_umi"
TOPIC_ALL = "all"

COMMAND_SUFFIX = "cmd"

# ------------------------------------------------------------------
# VOC risk thresholds (index units)
# ------------------------------------------------------------------

VOC_INDEX_MIN = 0.0
VOC_INDEX_MAX = 500.0
VOC_HIGH_ABOVE = 300.0
VOC_MEDIUM_ABOVE = 100.0

GRAMS_PER_KG = 1000.0


def topic_for(prefix: str, *parts: str) -> str:
    """Join a namespace prefix and topic parts into one hierarchical topic."""
    return "/".join([prefix.strip("/"), *parts])


def wildcard_for(prefix: str) -> str:
    """Return the single wildcard subscription covering *prefix*."""
    return topic_for(prefix, "#")

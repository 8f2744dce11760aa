"""Map free-text environment labels onto the deployment tiers."""

# Checked in this order; the first substring found wins.
_PRIORITY = ("prod", "oat", "uat", "dev")


def normalize_environment(label: str) -> str:
    """Return the canonical tier for ``label``.

    Labels containing none of the tier names are returned lower-cased, so
    custom tiers such as ``"staging"`` pass through unchanged.
    """
    normalized = label.lower()
    for tier in _PRIORITY:
        if tier in normalized:
            return tier
    return normalized

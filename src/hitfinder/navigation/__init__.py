"""Navigation over the keyword hits of a single document."""

from hitfinder.navigation.highlight import ANCHOR_PREFIX, NO_MATCHES, insert_anchors
from hitfinder.navigation.navigator import HitNavigator, create_navigator

__all__ = [
    "ANCHOR_PREFIX",
    "HitNavigator",
    "NO_MATCHES",
    "create_navigator",
    "insert_anchors",
]

"""NeoBili: AAP 2022 newborn bilirubin thresholds, risk tiers and nomogram."""

from neobili.constants import VERSION as __version__

"""Core mathematics and configuration for the Footy Edge prediction engine.

This package contains pure building blocks:

- ``algo_settings``: tunable model settings and their clamping rules
- ``engine_config``: fixed model constants (baselines, xG clamp, blend weight)
- ``markets``: market lines, pick labels, settlement rules
- ``fixtures``: immutable fixture records and chronological ordering
- ``form``: rolling team windows and league baselines
- ``poisson_math``: Poisson pmf/cdf helpers
- ``xg_model``: shrunk attack × defence expected goals
- ``outcomes``: Poisson / empirical 1X2 estimates and over/under
- ``odds_math``: decimal odds conversion and vig removal

Nothing in this package imports from ``footy_edge.services`` or
``footy_edge.models``.  All modules are side-effect-free and unit-testable
in isolation.
"""

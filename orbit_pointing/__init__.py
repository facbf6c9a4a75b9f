"""
Orbit Pointing
==============
Event-driven Keplerian propagation and ground-pointing attitude geometry for
spacecraft flight dynamics.

Architecture:
    - Analytic two-body propagation in equinoctial elements
    - Event detection with Brent root isolation and discrete state resets
    - Impulsive maneuvers triggered by any event detector
    - Local-orbital-frame attitude laws and attitude provider wrappers
    - Line-of-sight / body-shape intersection with finite-difference
      ground point velocity
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

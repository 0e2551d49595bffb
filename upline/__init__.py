"""
Upline.

Multi-level referral commission engine: enrollment into a 5-level ancestor
chain, all-or-nothing commission distribution and downline reporting.
"""

__version__ = "1.0.0"

"""
                Kitchen Fulfillment Engine

Order decomposition and multi-station kitchen display backend:
deal expansion, per-station preparation and dispatch tracking,
derived order status and post-placement financial adjustments.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"

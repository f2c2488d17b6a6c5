"""
One-shot migration of product data and images out of the Amplify stores.
"""

__version__ = "0.1.0"

"""Storefront E2E -- UI test suite for the Swag Labs demo shop.

Page objects, authentication helpers, lifecycle hooks, and the three
utilities the suite is built on: retry with exponential backoff, visual
regression diffing, and test-result aggregation.
"""

__version__ = "0.1.0"

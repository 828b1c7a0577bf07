"""Test utilities for wren applications.

Provides an in-process test client and a multipart body builder::

    from wren.testing import TestClient, encode_multipart
"""

from wren.testing.client import TestClient
from wren.testing.multipart import encode_multipart

__all__ = ["TestClient", "encode_multipart"]

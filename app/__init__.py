"""HTTP surface of the crawl coordinator.

Use the factory ``app.main.create_app`` or the module level ``app.main.app``.
"""

from __future__ import annotations

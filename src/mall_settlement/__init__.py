"""Mall sales settlement service.

Aggregates uploaded order rows into per-mall settlements, records which
orders back each settlement, and serves frozen or live order listings with
mall promotions applied at read time.
"""

__version__ = "1.0.0"

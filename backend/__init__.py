"""Backend package providing the REST API for the household ledger."""

__all__ = [
    "crud",
    "database",
    "identity",
    "models",
    "schemas",
    "server",
    "services",
]

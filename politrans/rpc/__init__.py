"""
politrans.rpc
-------------

Host surfaces around the ledger core:

- `methods`: transport-agnostic JSON-RPC method table (``token.*``)
- `mount`:   FastAPI router/app exposing the same methods over REST and
             JSON-RPC 2.0, with the caller identity taken from ``X-Caller``

The ledger itself knows nothing about transports; everything here is glue.
"""

RPC_PREFIX = "token"
CALLER_HEADER = "X-Caller"

__all__ = ["RPC_PREFIX", "CALLER_HEADER"]

"""HTTP utilities package.

Exposes pooled httpx clients and the streaming transport boundary.
"""

from .client import (
    aiter_response_fragments,
    astream_sse,
    close_all_clients,
    get_httpx_client,
    iter_response_fragments,
    stream_sse,
)

__all__ = [
    "get_httpx_client",
    "close_all_clients",
    "iter_response_fragments",
    "aiter_response_fragments",
    "stream_sse",
    "astream_sse",
]

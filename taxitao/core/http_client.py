from typing import Annotated
import httpx
from fastapi import Depends


def get_http_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for outbound provider calls; None means httpx's default."""
    return None


TransportDep = Annotated[httpx.AsyncBaseTransport | None, Depends(get_http_transport)]
